"""Apply scorers across a ticket population with a bounded thread pool.

Each ticket is scored by exactly one task, which owns that ticket's score
fields for the duration of the call, so no locking is needed. A failed
call marks only that ticket unscored; the batch always continues.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from jira_insights.analytics.metrics.text import concat_and_remove_newlines
from jira_insights.core.config import SCORING_MAX_WORKERS, SCORING_MIN_PARALLEL
from jira_insights.core.models import TicketModel

from .base import Scorer, score_slot

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int | None, int | None], None]
TextBuilder = Callable[[TicketModel], str]


def default_text(ticket: TicketModel) -> str:
    return concat_and_remove_newlines(ticket.summary, ticket.description)


@dataclass(slots=True)
class ScoringReport:
    total: int = 0
    scored: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)
    failures: dict[str, list[str]] = field(default_factory=dict)
    cancelled: bool = False

    def skipped_no_score(self, target: str) -> int:
        return self.skipped.get(target, 0)


def _score_ticket(
    ticket: TicketModel,
    scorers: Sequence[Scorer],
    text_builder: TextBuilder,
    cancel_event: threading.Event | None,
) -> list[str]:
    errors: list[str] = []
    text = text_builder(ticket)
    for scorer in scorers:
        if cancel_event is not None and cancel_event.is_set():
            break
        slot = score_slot(ticket, scorer.target)
        try:
            result = scorer.evaluate(text)
        except Exception as exc:
            logger.exception("Scorer %s raised on %s", scorer.name, ticket.key)
            message = f"{scorer.name}: {exc}"
            slot.fail(message)
            errors.append(message)
            continue
        if result.ok:
            slot.set(result.value)
            continue
        slot.fail(result.error)
        if result.error:
            errors.append(result.error)
            logger.warning("Scoring %s with %s failed: %s", ticket.key, scorer.name, result.error)
    return errors


def apply_scorers(
    tickets: Sequence[TicketModel],
    scorers: Sequence[Scorer],
    *,
    max_workers: int = SCORING_MAX_WORKERS,
    min_parallel: int = SCORING_MIN_PARALLEL,
    cancel_event: threading.Event | None = None,
    progress: ProgressCallback | None = None,
    text_builder: TextBuilder = default_text,
) -> ScoringReport:
    """Attach scores from every scorer to every ticket.

    Parameters
    ----------
    tickets : sequence of TicketModel
        Population to score (mutated in place: ``sentiment`` / ``grammar``).
    scorers : sequence of Scorer
        Capabilities to apply; each writes to its own target slot.
    max_workers : int
        Upper bound on concurrent external calls (rate limit guard).
    min_parallel : int
        Below this many tickets the pass runs sequentially.
    cancel_event : threading.Event, optional
        When set, unstarted work is dropped; unfinished tickets keep
        ``has_score=False``.
    progress : callback, optional
        Progress reporter ``(message, current, total)``.
    text_builder : callable
        Produces the text sent to the scorers for a ticket.

    Returns
    -------
    ScoringReport
        Scored / skipped counts per target and failure messages by key.
    """
    report = ScoringReport(total=len(tickets))
    if not tickets or not scorers:
        return report

    failures: dict[str, list[str]] = {}
    message = "Scoring tickets"
    if progress:
        progress(message, 0, len(tickets))

    if len(tickets) < min_parallel or max_workers <= 1:
        for idx, ticket in enumerate(tickets, start=1):
            if cancel_event is not None and cancel_event.is_set():
                break
            errors = _score_ticket(ticket, scorers, text_builder, cancel_event)
            if errors:
                failures[ticket.key] = errors
            if progress:
                progress(message, idx, len(tickets))
    else:
        completed = 0
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {
                pool.submit(_score_ticket, ticket, scorers, text_builder, cancel_event): ticket
                for ticket in tickets
            }
            for fut in as_completed(futures):
                ticket = futures[fut]
                if fut.cancelled():
                    continue
                errors = fut.result()
                if errors:
                    failures[ticket.key] = errors
                completed += 1
                if progress:
                    progress(message, completed, len(tickets))
                if cancel_event is not None and cancel_event.is_set():
                    for pending in futures:
                        pending.cancel()

    report.failures = failures
    report.cancelled = bool(cancel_event is not None and cancel_event.is_set())
    for scorer in scorers:
        target = scorer.target.value
        scored = sum(1 for t in tickets if score_slot(t, scorer.target).has_score)
        report.scored[target] = scored
        report.skipped[target] = len(tickets) - scored
    logger.info(
        "Scored %s ticket(s) with %s scorer(s); %s failed; cancelled=%s",
        len(tickets),
        len(scorers),
        len(failures),
        report.cancelled,
    )
    return report
