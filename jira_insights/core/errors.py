"""Exception hierarchy for the analysis engine.

Configuration errors are fatal and raised immediately. Scoring errors are
recorded per ticket by the scoring runner and never abort a batch.
"""

from __future__ import annotations


class JiraInsightsError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(JiraInsightsError, ValueError):
    """Invalid static configuration (patterns, field tags, analysis names)."""


class PatternConfigError(ConfigurationError):
    def __init__(self, name: str, expression: str, reason: str):
        super().__init__(f"Invalid pattern {name!r} ({expression!r}): {reason}")
        self.name = name
        self.expression = expression


class UnsupportedFieldError(ConfigurationError):
    def __init__(self, tag: str, supported: list[str]):
        super().__init__(f"Unsupported text field {tag!r}; expected one of: {', '.join(supported)}")
        self.tag = tag


class UnsupportedAnalysisError(ConfigurationError):
    def __init__(self, name: str, supported: list[str]):
        super().__init__(f"Unsupported analysis {name!r}; expected one of: {', '.join(supported)}")
        self.name = name


class ScoringUnavailable(JiraInsightsError):
    """An external scoring service could not produce a score (network, quota, auth)."""

    def __init__(self, scorer: str, reason: str):
        super().__init__(f"{scorer} unavailable: {reason}")
        self.scorer = scorer
        self.reason = reason


class StoreError(JiraInsightsError):
    """A stored ticket document could not be read or written."""
