"""Jira REST client: paged JQL ticket search and single-ticket changelog fetch."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Sequence
from typing import Any

from jira import JIRA, JIRAError

from .config import JIRA_REST_API_VERSION, SEARCH_CACHE_TTL_SECONDS, SEARCH_PAGE_SIZE

logger = logging.getLogger(__name__)

SearchKey = tuple[str, tuple[str, ...], tuple[str, ...]]


class JiraAPI:
    """Thin wrapper over the ``jira`` client session.

    Searches go through the token-paged ``search/jql`` endpoint and are kept
    for ``cache_ttl`` seconds, keyed by (jql, fields, expand).
    """

    def __init__(self, server: str, email: str, token: str, *, cache_ttl: float = SEARCH_CACHE_TTL_SECONDS):
        self.server = server.rstrip("/")
        self.client = JIRA(
            basic_auth=(email, token),
            options={"server": self.server, "rest_api_version": JIRA_REST_API_VERSION},
        )
        self.cache_ttl = cache_ttl
        self._search_cache: dict[SearchKey, tuple[float, list[dict[str, Any]]]] = {}

    @property
    def search_url(self) -> str:
        return f"{self.server}/rest/api/{JIRA_REST_API_VERSION}/search/jql"

    def clear_cache(self) -> None:
        cache = getattr(self, "_search_cache", None)
        if cache:
            cache.clear()

    def iter_search_pages(
        self,
        jql: str,
        fields: Sequence[str] = (),
        expand: Sequence[str] = (),
        page_size: int = SEARCH_PAGE_SIZE,
    ) -> Iterator[list[dict[str, Any]]]:
        """Yield raw issue pages until Jira stops returning a ``nextPageToken``."""
        session = getattr(self.client, "_session", None)
        if session is None:
            raise RuntimeError("Jira session unavailable")
        params: dict[str, Any] = {"jql": jql, "maxResults": page_size}
        if fields:
            params["fields"] = ",".join(fields)
        if expand:
            params["expand"] = ",".join(expand)
        page_token = None
        while True:
            resp = session.get(self.search_url, params={**params, "nextPageToken": page_token} if page_token else params)
            if resp.status_code >= 400:
                raise RuntimeError(f"JQL search failed ({resp.status_code}) for {jql!r}: {resp.text[:200]}")
            payload = resp.json()
            yield payload.get("issues") or []
            page_token = payload.get("nextPageToken")
            if not page_token or payload.get("isLast"):
                return

    def search_tickets(
        self,
        jql: str,
        fields: Sequence[str] = (),
        expand: Sequence[str] = (),
        page_size: int = SEARCH_PAGE_SIZE,
    ) -> list[dict[str, Any]]:
        key: SearchKey = (jql, tuple(fields), tuple(expand))
        hit = self._search_cache.get(key)
        if hit is not None and time.monotonic() - hit[0] < self.cache_ttl:
            logger.debug("Search cache hit for %r", jql)
            return hit[1]
        issues: list[dict[str, Any]] = []
        for page in self.iter_search_pages(jql, fields, expand, page_size):
            issues.extend(page)
            logger.debug("Fetched page of %s issue(s) (%s so far)", len(page), len(issues))
        self._search_cache[key] = (time.monotonic(), issues)
        return issues

    def fetch_ticket_raw(self, key: str) -> dict[str, Any]:
        """Full ticket JSON (every comment, complete changelog)."""
        try:
            issue = self.client.issue(key, expand="changelog")
        except JIRAError as exc:  # pragma: no cover - network error path
            raise RuntimeError(f"Failed to fetch ticket {key}: {exc}") from exc
        raw = getattr(issue, "raw", issue)
        if not isinstance(raw, dict):
            raise RuntimeError(f"Unexpected payload type for {key}: {type(raw)!r}")
        return raw
