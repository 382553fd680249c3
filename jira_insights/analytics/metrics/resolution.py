"""Resolution time inference from a ticket's status change log.

The change log is replayed in stored order through a small state machine
(Open -> In Progress -> Closed, possibly Reopened). Only the literal
``Open -> Closed`` status transition counts as a resolution; the ingestion
layer is responsible for storing events in temporal order.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum

import pandas as pd
import pytz

from jira_insights.core.config import (
    STATUS_CLOSED,
    STATUS_FIELD,
    STATUS_IN_PROGRESS,
    STATUS_OPEN,
    STATUS_REOPENED,
)
from jira_insights.core.models import ChangeEventModel, TicketModel

# Sentinel for "no qualifying closure found".
UNRESOLVED = None


class TicketState(StrEnum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    CLOSED = "Closed"
    REOPENED = "Reopened"
    OTHER = "Other"


class ClosurePolicy(StrEnum):
    FIRST = "first"
    LAST = "last"


_STATE_BY_STATUS: dict[str, TicketState] = {
    STATUS_OPEN: TicketState.OPEN,
    STATUS_IN_PROGRESS: TicketState.IN_PROGRESS,
    STATUS_CLOSED: TicketState.CLOSED,
    STATUS_REOPENED: TicketState.REOPENED,
}


def normalize_timestamp(value) -> datetime | None:
    """Return a UTC-aware datetime, or None when the value cannot be parsed.

    Naive values are assumed to be UTC.
    """
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if getattr(ts, "tzinfo", None) is None:
        ts = ts.tz_localize(pytz.UTC)
    return ts.tz_convert(pytz.UTC).to_pydatetime()


def hours_between(end: datetime, start: datetime) -> float:
    return (end - start).total_seconds() / 3600.0


class ResolutionStateMachine:
    """Replays status events and records every qualifying closure.

    Reopen cycles are tracked in ``state`` so callers can see where a ticket
    ended up, while ``closures`` keeps each ``Open -> Closed`` timestamp in
    replay order.
    """

    def __init__(self):
        self.state = TicketState.OPEN
        self.closures: list[datetime] = []
        self.transitions = 0

    def feed(self, event: ChangeEventModel) -> None:
        if str(event.field or "").lower() != STATUS_FIELD:
            return
        self.transitions += 1
        if event.from_value == STATUS_OPEN and event.to_value == STATUS_CLOSED:
            ts = normalize_timestamp(event.timestamp)
            if ts is not None:
                self.closures.append(ts)
        self.state = self._next_state(event.to_value)

    def replay(self, events: Iterable[ChangeEventModel]) -> ResolutionStateMachine:
        for event in events:
            self.feed(event)
        return self

    def _next_state(self, to_value: str | None) -> TicketState:
        target = _STATE_BY_STATUS.get(to_value or "", TicketState.OTHER)
        # Moving back to Open after a closure is a reopen.
        if target is TicketState.OPEN and self.state is TicketState.CLOSED:
            return TicketState.REOPENED
        return target

    def closure(self, policy: ClosurePolicy = ClosurePolicy.FIRST) -> datetime | None:
        if not self.closures:
            return None
        if policy is ClosurePolicy.LAST:
            return self.closures[-1]
        return self.closures[0]


def resolve_resolution_hours(
    events: Iterable[ChangeEventModel],
    created,
    policy: ClosurePolicy = ClosurePolicy.FIRST,
) -> float | None:
    """Hours from creation to the qualifying closing transition.

    Parameters
    ----------
    events : iterable of ChangeEventModel
        The ticket's change log in stored (temporal) order.
    created : datetime-like
        Ticket creation timestamp.
    policy : ClosurePolicy
        Which ``Open -> Closed`` transition to use when a ticket was closed
        more than once. Defaults to the first.

    Returns
    -------
    float or None
        Elapsed hours (zero or negative values are passed through), or
        ``UNRESOLVED`` when there is no qualifying transition or no
        creation timestamp.
    """
    created_ts = normalize_timestamp(created)
    if created_ts is None:
        return UNRESOLVED
    closed_ts = ResolutionStateMachine().replay(events).closure(policy)
    if closed_ts is None:
        return UNRESOLVED
    return hours_between(closed_ts, created_ts)


def resolve_ticket(ticket: TicketModel, policy: ClosurePolicy = ClosurePolicy.FIRST) -> float | None:
    machine = ResolutionStateMachine().replay(ticket.change_events)
    ticket.final_state = machine.state.value if machine.transitions else None
    created_ts = normalize_timestamp(ticket.created)
    closed_ts = machine.closure(policy)
    if created_ts is None or closed_ts is None:
        ticket.resolution_hours = UNRESOLVED
    else:
        ticket.resolution_hours = hours_between(closed_ts, created_ts)
    return ticket.resolution_hours
