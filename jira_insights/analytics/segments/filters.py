"""Population filters deciding which tickets enter a correlation analysis.

The base rule applies to every time-correlated analysis: the ticket must
have a resolution time and be high priority (Critical or Major). Sanity
bounds on resolution time and per-analysis metric bounds are layered on
top as further exclusion reasons.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass

import pandas as pd

from jira_insights.core.config import (
    HIGH_PRIORITY_NAMES,
    MAX_RESOLUTION_HOURS,
    MIN_RESOLUTION_HOURS,
    normalize_priority_name,
)
from jira_insights.core.models import TicketModel

UNRESOLVED = "unresolved"
LOW_PRIORITY = "low_priority"
OUT_OF_BOUNDS = "out_of_bounds"
NO_SCORE = "no_score"
METRIC_OUT_OF_BOUNDS = "metric_out_of_bounds"


@dataclass(slots=True, frozen=True)
class ResolutionBounds:
    """Plausible resolution times: ``min_exclusive < hours <= max_inclusive``."""

    min_exclusive: float = MIN_RESOLUTION_HOURS
    max_inclusive: float = MAX_RESOLUTION_HOURS

    def contains(self, hours: float | None) -> bool:
        if not is_resolved(hours):
            return False
        return self.min_exclusive < hours <= self.max_inclusive

    @classmethod
    def from_settings(cls, settings) -> ResolutionBounds:
        return cls(settings.min_resolution_hours, settings.max_resolution_hours)


def is_high_priority(priority: str | None) -> bool:
    return normalize_priority_name(priority) in HIGH_PRIORITY_NAMES


def is_resolved(hours: float | None) -> bool:
    if hours is None:
        return False
    try:
        return not math.isnan(hours)
    except TypeError:
        return False


def is_eligible(ticket: TicketModel, bounds: ResolutionBounds | None = None) -> bool:
    """Base rule plus resolution bounds for a single ticket."""
    bounds = bounds or ResolutionBounds()
    return is_high_priority(ticket.priority) and bounds.contains(ticket.resolution_hours)


def exclusion_reasons(df: pd.DataFrame, bounds: ResolutionBounds | None = None) -> pd.Series:
    """Per-row exclusion reason, or None for eligible rows.

    Precedence: unresolved, then low priority, then out of bounds.
    """
    if df.empty:
        return pd.Series([], index=df.index, dtype=object)
    bounds = bounds or ResolutionBounds()
    hours = pd.to_numeric(df["resolution_hours"], errors="coerce")
    high = df["priority"].apply(is_high_priority).astype(bool)
    in_bounds = (hours > bounds.min_exclusive) & (hours <= bounds.max_inclusive)

    reasons = pd.Series([None] * len(df), index=df.index, dtype=object)
    reasons = reasons.mask(~in_bounds, OUT_OF_BOUNDS)
    reasons = reasons.mask(~high, LOW_PRIORITY)
    reasons = reasons.mask(hours.isna(), UNRESOLVED)
    return reasons


def refine(reasons: pd.Series, keep: pd.Series, reason: str) -> pd.Series:
    """Mark still-eligible rows where ``keep`` is False with ``reason``."""
    if reasons.empty:
        return reasons
    drop = reasons.isna() & ~keep.fillna(False).astype(bool)
    return reasons.mask(drop, reason)


def eligible(df: pd.DataFrame, bounds: ResolutionBounds | None = None) -> pd.DataFrame:
    if df.empty:
        return df
    reasons = exclusion_reasons(df, bounds)
    return df[reasons.isna()].copy()


def count_reasons(reasons: pd.Series) -> dict[str, int]:
    if reasons.empty:
        return {}
    counts = reasons.dropna().value_counts()
    return {str(k): int(v) for k, v in counts.items()}


def priority_breakdown(df: pd.DataFrame) -> Mapping[str, int]:
    """Ticket counts per normalized priority name (diagnostics for the dashboard)."""
    if df.empty:
        return {}
    counts = df["priority"].apply(normalize_priority_name).value_counts()
    return {str(k): int(v) for k, v in counts.items()}
