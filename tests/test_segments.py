from datetime import UTC, datetime

import pandas as pd

from jira_insights.analytics.segments.filters import (
    LOW_PRIORITY,
    OUT_OF_BOUNDS,
    UNRESOLVED,
    ResolutionBounds,
    count_reasons,
    eligible,
    exclusion_reasons,
    is_eligible,
    is_high_priority,
    priority_breakdown,
    refine,
)
from jira_insights.core.mappers import tickets_to_dataframe
from jira_insights.core.models import TicketModel


def _ticket(key, priority, hours):
    return TicketModel(
        key=key,
        summary=f"Ticket {key}",
        description=None,
        created=datetime(2024, 9, 1, tzinfo=UTC),
        priority=priority,
        resolution_hours=hours,
    )


def _sample_df():
    return tickets_to_dataframe(
        [
            _ticket("OBS-1", "Critical", 5.0),
            _ticket("OBS-2", "Minor", 8.0),
            _ticket("OBS-3", "Major", None),
            _ticket("OBS-4", "Critical", 30000.0),
            _ticket("OBS-5", "Major (migrated)", 12.0),
            _ticket("OBS-6", "Trivial", None),
            _ticket("OBS-7", "Critical", 0.0),
        ]
    )


def test_high_priority_names():
    assert is_high_priority("Critical")
    assert is_high_priority("MAJOR")
    assert is_high_priority("2")
    assert not is_high_priority("Blocker")
    assert not is_high_priority(None)


def test_exclusion_reason_precedence():
    reasons = [None if pd.isna(r) else r for r in exclusion_reasons(_sample_df())]
    assert reasons == [None, LOW_PRIORITY, UNRESOLVED, OUT_OF_BOUNDS, None, UNRESOLVED, OUT_OF_BOUNDS]


def test_eligible_rows():
    out = eligible(_sample_df())
    assert list(out["key"]) == ["OBS-1", "OBS-5"]


def test_custom_bounds():
    out = eligible(_sample_df(), ResolutionBounds(min_exclusive=6.0, max_inclusive=40000.0))
    assert list(out["key"]) == ["OBS-4", "OBS-5"]


def test_upper_bound_is_inclusive():
    bounds = ResolutionBounds()
    assert bounds.contains(27000.0)
    assert not bounds.contains(27000.5)
    assert not bounds.contains(0.0)
    assert not bounds.contains(None)


def test_is_eligible_single_ticket():
    assert is_eligible(_ticket("OBS-1", "Major", 3.0))
    assert not is_eligible(_ticket("OBS-2", "Minor", 3.0))
    assert not is_eligible(_ticket("OBS-3", "Major", None))


def test_refine_only_touches_eligible_rows():
    df = _sample_df()
    reasons = exclusion_reasons(df)
    keep = pd.Series([False] * len(df), index=df.index)
    refined = refine(reasons, keep, "no_score")
    counts = count_reasons(refined)
    assert counts["no_score"] == 2
    assert counts[UNRESOLVED] == 2
    assert counts[LOW_PRIORITY] == 1


def test_empty_frame():
    empty = tickets_to_dataframe([])
    assert exclusion_reasons(empty).empty
    assert eligible(empty).empty
    assert priority_breakdown(empty) == {}


def test_priority_breakdown_normalizes():
    counts = priority_breakdown(_sample_df())
    assert counts["Critical"] == 3
    assert counts["Major"] == 2
