"""Regex detectors for diagnostic content (steps to reproduce, stack traces).

Each detector scans the ticket description first and then every comment
body in order, stopping at the first match. Texts are scanned whole so
multi-line patterns can match across line breaks.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from jira_insights.core.config import STACK_TRACE_PATTERN, STEPS_TO_REPRODUCE_PATTERN
from jira_insights.core.errors import PatternConfigError
from jira_insights.core.models import TicketModel


class PatternDetector:
    def __init__(self, name: str, expression: str):
        self.name = name
        self.expression = expression
        try:
            self._regex = re.compile(expression)
        except re.error as exc:
            raise PatternConfigError(name, expression, str(exc)) from exc

    def __repr__(self) -> str:
        return f"PatternDetector({self.name!r}, {self.expression!r})"

    def detect(self, text: str | None) -> bool:
        if not text:
            return False
        return self._regex.search(text) is not None

    def detect_ticket(self, ticket: TicketModel) -> bool:
        return any(self.detect(text) for text in _ticket_texts(ticket))


def _ticket_texts(ticket: TicketModel) -> Iterator[str | None]:
    yield ticket.description
    for comment in ticket.comments:
        yield comment.body


STEPS_TO_REPRODUCE = PatternDetector("steps_to_reproduce", STEPS_TO_REPRODUCE_PATTERN)
STACK_TRACE = PatternDetector("stack_trace", STACK_TRACE_PATTERN)


def has_steps_to_reproduce(ticket: TicketModel, detector: PatternDetector | None = None) -> bool:
    return (detector or STEPS_TO_REPRODUCE).detect_ticket(ticket)


def has_stack_trace(ticket: TicketModel, detector: PatternDetector | None = None) -> bool:
    return (detector or STACK_TRACE).detect_ticket(ticket)
