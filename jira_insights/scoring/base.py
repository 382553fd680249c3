"""Scorer capability: external services that rate ticket text."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

from jira_insights.core.errors import ScoringUnavailable
from jira_insights.core.models import ScoreModel, TicketModel


class ScoreTarget(StrEnum):
    SENTIMENT = "sentiment"
    GRAMMAR = "grammar"


@dataclass(slots=True, frozen=True)
class ScoreResult:
    value: float | None
    ok: bool
    error: str | None = None


class Scorer(ABC):
    """Stateless scoring capability passed explicitly into a scoring pass.

    Subclasses implement :meth:`score`, returning a number, or ``None`` when
    the service has nothing to rate (e.g. empty text), and raising
    :class:`ScoringUnavailable` on network, quota or auth failures.
    """

    name: str = "scorer"
    target: ScoreTarget = ScoreTarget.SENTIMENT

    @abstractmethod
    def score(self, text: str) -> float | None: ...

    def evaluate(self, text: str) -> ScoreResult:
        try:
            value = self.score(text)
        except ScoringUnavailable as exc:
            return ScoreResult(None, False, str(exc))
        if value is None:
            return ScoreResult(None, False)
        return ScoreResult(float(value), True)


def score_slot(ticket: TicketModel, target: ScoreTarget) -> ScoreModel:
    if target is ScoreTarget.GRAMMAR:
        return ticket.grammar
    return ticket.sentiment
