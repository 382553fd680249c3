"""TicketService: orchestrates fetching, mapping, enrichment, and scoring."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import UTC, datetime, timedelta
from typing import Any

import pandas as pd

from jira_insights.analytics.metrics.attachments import classify_ticket_attachments
from jira_insights.analytics.metrics.patterns import PatternDetector
from jira_insights.analytics.metrics.resolution import resolve_ticket
from jira_insights.analytics.metrics.text import comment_word_count, concat_and_remove_newlines, count_words
from jira_insights.scoring.base import Scorer
from jira_insights.scoring.runner import ScoringReport, apply_scorers

from .config import (
    COMMENT_HYDRATION_MAX_WORKERS,
    COMMENT_HYDRATION_MIN_PARALLEL,
    COMMENT_PAGE_SIZE_GUESS,
    FULL_COMMENT_HYDRATION,
    JIRA_FETCH_BASE_FIELDS,
)
from .jira_client import JiraAPI
from .mappers import map_issue, tickets_to_dataframe
from .models import TicketModel
from .settings import AnalysisSettings, load_analysis_settings
from .store import TicketStore

DEFAULT_FIELDS: Sequence[str] = tuple(JIRA_FETCH_BASE_FIELDS)
ProgressCallback = Callable[[str, int | None, int | None], None]

logger = logging.getLogger(__name__)


def project_jql(project_key: str, max_days: int | None = None) -> str:
    """JQL for a project's tickets in creation order, optionally limited to recent days."""
    clause = f"project = {project_key}"
    if max_days and max_days > 0:
        since = datetime.now(UTC) - timedelta(days=max_days)
        clause += f" AND created >= '{since:%Y-%m-%d}'"
    return f"{clause} ORDER BY created ASC"


def enrich_ticket(
    ticket: TicketModel,
    settings: AnalysisSettings,
    steps_detector: PatternDetector,
    stack_detector: PatternDetector,
) -> TicketModel:
    """Populate every derived field of one ticket except external scores."""
    resolve_ticket(ticket, settings.closure_policy)
    ticket.has_steps_to_reproduce = steps_detector.detect_ticket(ticket)
    ticket.has_stack_trace = stack_detector.detect_ticket(ticket)
    ticket.summary_words = count_words(ticket.summary)
    ticket.description_words = count_words(ticket.description)
    ticket.comment_words = comment_word_count(ticket.comments)
    ticket.summary_description_words = count_words(concat_and_remove_newlines(ticket.summary, ticket.description))
    classify_ticket_attachments(ticket)
    return ticket


class TicketService:
    def __init__(self, api: JiraAPI | None = None, settings: AnalysisSettings | None = None):
        self.api = api
        self.settings = settings or load_analysis_settings()
        # Compiled once per service; bad overrides raise PatternConfigError here.
        self._steps = self.settings.steps_detector()
        self._stack = self.settings.stack_trace_detector()

    # ------------------ Fetch Methods ------------------
    def fetch_project(
        self,
        project_key: str,
        *,
        progress: ProgressCallback | None = None,
        max_days: int | None = None,
    ) -> list[TicketModel]:
        """Fetch a project's tickets with changelogs (optionally bounded by recent days).

        Parameters
        ----------
        project_key : str
            Jira project key.
        progress : callback, optional
            Progress reporter.
        max_days : int | None
            If provided, restrict to tickets created within the last ``max_days`` days.
        """
        if self.api is None:
            raise RuntimeError("TicketService has no Jira API configured")
        self.api.clear_cache()
        if progress:
            progress(f"Querying tickets for {project_key}", None, None)
        raw = self.api.search_tickets(project_jql(project_key, max_days), fields=DEFAULT_FIELDS, expand=("changelog",))
        self._inflate_truncated_comments(raw, force_all=FULL_COMMENT_HYDRATION, progress=progress)
        tickets = [map_issue(r) for r in raw if r.get("key")]
        logger.info("Fetched %s ticket(s) for %s", len(tickets), project_key)
        return tickets

    # ------------------ Enrichment Pipeline ------------------
    def enrich(
        self,
        tickets: Sequence[TicketModel],
        *,
        progress: ProgressCallback | None = None,
    ) -> list[TicketModel]:
        if progress:
            progress("Deriving ticket metrics", 0, len(tickets))
        out = []
        for idx, ticket in enumerate(tickets, start=1):
            out.append(enrich_ticket(ticket, self.settings, self._steps, self._stack))
            if progress and idx % 100 == 0:
                progress("Deriving ticket metrics", idx, len(tickets))
        if progress:
            progress("Deriving ticket metrics", len(tickets), len(tickets))
        resolved = sum(1 for t in out if t.resolution_hours is not None)
        logger.info("Enriched %s ticket(s); %s resolved", len(out), resolved)
        return out

    def score(
        self,
        tickets: Sequence[TicketModel],
        scorers: Sequence[Scorer],
        *,
        cancel_event: threading.Event | None = None,
        progress: ProgressCallback | None = None,
        store: TicketStore | None = None,
    ) -> ScoringReport:
        """Score ``tickets`` in place; with ``store``, persist them afterwards, cancelled or not."""
        report = apply_scorers(
            tickets,
            scorers,
            max_workers=self.settings.scoring_max_workers,
            cancel_event=cancel_event,
            progress=progress,
        )
        if store is not None:
            written = store.upsert(tickets)
            logger.info("Persisted %s scored ticket(s) to %s", written, store.base_path)
        return report

    def to_frame(self, tickets: Sequence[TicketModel]) -> pd.DataFrame:
        return tickets_to_dataframe(tickets)

    def fetch_and_enrich(
        self,
        project_key: str,
        *,
        progress: ProgressCallback | None = None,
        max_days: int | None = None,
    ) -> list[TicketModel]:
        tickets = self.fetch_project(project_key, progress=progress, max_days=max_days)
        return self.enrich(tickets, progress=progress)

    # ------------------ Comment Hydration ------------------
    def _inflate_truncated_comments(
        self,
        raw_issues: list[dict[str, Any]],
        *,
        force_all: bool = False,
        progress: ProgressCallback | None = None,
    ) -> int:
        """Re-fetch tickets whose embedded comment list was cut short by the search.

        Search results embed only the first page of comments; the real count
        is in ``fields.comment.total``. Returns the number of tickets re-fetched.
        """
        pending = [issue for issue in raw_issues if force_all or _comments_truncated(issue)]
        if not pending:
            return 0
        message = "Loading complete comment history"
        if progress:
            progress(message, 0, len(pending))
        if len(pending) < COMMENT_HYDRATION_MIN_PARALLEL:
            for done, issue in enumerate(pending, start=1):
                self._hydrate_ticket(issue)
                if progress:
                    progress(message, done, len(pending))
            return len(pending)
        with ThreadPoolExecutor(max_workers=COMMENT_HYDRATION_MAX_WORKERS) as pool:
            futures = [pool.submit(self._hydrate_ticket, issue) for issue in pending]
            for done, fut in enumerate(as_completed(futures), start=1):
                fut.result()
                if progress:
                    progress(message, done, len(pending))
        return len(pending)

    def _hydrate_ticket(self, issue: dict[str, Any]) -> None:
        key = issue.get("key")
        if not key:
            return
        try:
            detail = self.api.fetch_ticket_raw(key)
        except RuntimeError as exc:
            logger.warning("Keeping truncated comments for %s: %s", key, exc)
            return
        fields = issue.setdefault("fields", {})
        embedded = (fields.get("comment") or {}).get("comments") or []
        full = ((detail.get("fields") or {}).get("comment") or {}).get("comments") or []
        if len(full) >= len(embedded):
            fields["comment"] = {"comments": full, "total": len(full)}
        histories = (detail.get("changelog") or {}).get("histories") or []
        if len(histories) > len((issue.get("changelog") or {}).get("histories") or []):
            issue["changelog"] = detail["changelog"]
        logger.debug("Hydrated %s: %s -> %s comment(s)", key, len(embedded), len(full))


def _comments_truncated(issue: dict[str, Any]) -> bool:
    block = (issue.get("fields") or {}).get("comment") or {}
    embedded = len(block.get("comments") or [])
    total = block.get("total")
    if isinstance(total, int):
        return total > embedded
    return embedded >= COMMENT_PAGE_SIZE_GUESS
