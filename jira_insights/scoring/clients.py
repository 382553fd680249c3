"""HTTP scorer clients: Bing Spell Check (grammar) and Cloud Natural Language (sentiment)."""

from __future__ import annotations

from typing import Any

import requests

from jira_insights.analytics.metrics.text import count_words
from jira_insights.core.config import (
    BING_SPELLCHECK_URL,
    GOOGLE_SENTIMENT_URL,
    SCORING_TIMEOUT_SECONDS,
)
from jira_insights.core.errors import ScoringUnavailable

from .base import Scorer, ScoreTarget

# Bing proof mode rejects longer POST bodies.
BING_MAX_CHARS = 10000


class _HttpScorer(Scorer):
    def __init__(self, session: requests.Session | None = None, timeout: float = SCORING_TIMEOUT_SECONDS):
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, url: str, **kwargs) -> dict[str, Any]:
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise ScoringUnavailable(self.name, f"transport error: {exc}") from exc
        if resp.status_code in (401, 403):
            raise ScoringUnavailable(self.name, f"authentication failed ({resp.status_code})")
        if resp.status_code == 429:
            raise ScoringUnavailable(self.name, "quota exceeded (429)")
        if resp.status_code >= 400:
            raise ScoringUnavailable(self.name, f"HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise ScoringUnavailable(self.name, f"malformed response: {exc}") from exc
        if not isinstance(data, dict):
            raise ScoringUnavailable(self.name, f"malformed response: expected object, got {type(data).__name__}")
        return data


class BingGrammarScorer(_HttpScorer):
    """Grammar correctness as the share of words Bing does not flag, on a 0-100 scale."""

    name = "bing-grammar"
    target = ScoreTarget.GRAMMAR

    def __init__(
        self,
        api_key: str,
        *,
        market: str = "en-US",
        url: str = BING_SPELLCHECK_URL,
        session: requests.Session | None = None,
        timeout: float = SCORING_TIMEOUT_SECONDS,
    ):
        super().__init__(session=session, timeout=timeout)
        self.api_key = api_key
        self.market = market
        self.url = url

    def score(self, text: str) -> float | None:
        text = (text or "")[:BING_MAX_CHARS]
        words = count_words(text)
        if words == 0:
            return None
        data = self._request(
            "POST",
            self.url,
            params={"mode": "proof", "mkt": self.market},
            data={"text": text},
            headers={"Ocp-Apim-Subscription-Key": self.api_key},
        )
        tokens = data.get("flaggedTokens") or []
        if not isinstance(tokens, list):
            raise ScoringUnavailable(self.name, "malformed response: flaggedTokens is not a list")
        flagged = len(tokens)
        return max(0.0, 100.0 * (1.0 - flagged / words))


class GoogleSentimentScorer(_HttpScorer):
    """Document sentiment score in [-1, 1]."""

    name = "google-sentiment"
    target = ScoreTarget.SENTIMENT

    def __init__(
        self,
        api_key: str,
        *,
        url: str = GOOGLE_SENTIMENT_URL,
        session: requests.Session | None = None,
        timeout: float = SCORING_TIMEOUT_SECONDS,
    ):
        super().__init__(session=session, timeout=timeout)
        self.api_key = api_key
        self.url = url

    def score(self, text: str) -> float | None:
        if not text or not text.strip():
            return None
        data = self._request(
            "POST",
            self.url,
            params={"key": self.api_key},
            json={"document": {"type": "PLAIN_TEXT", "content": text}, "encodingType": "UTF8"},
        )
        if "documentSentiment" not in data:
            return None
        sentiment = data["documentSentiment"] or {}
        if not isinstance(sentiment, dict):
            raise ScoringUnavailable(self.name, "malformed response: documentSentiment is not an object")
        # The API omits zero-valued fields.
        try:
            return float(sentiment.get("score", 0.0))
        except (TypeError, ValueError) as exc:
            raise ScoringUnavailable(self.name, f"malformed response: {exc}") from exc
