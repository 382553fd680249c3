"""Domain data models for Jira tickets, comments, attachments, and change events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class CommentModel:
    author: str | None
    created: datetime | None
    body: str | None


@dataclass(slots=True)
class AttachmentModel:
    filename: str | None
    size: int = 0
    created: datetime | None = None
    mime_type: str | None = None
    # Populated by the attachment classifier
    category: str | None = None


@dataclass(slots=True)
class ChangeEventModel:
    """A single field transition flattened out of a changelog history entry."""

    timestamp: datetime | None
    field: str | None
    from_value: str | None
    to_value: str | None
    author: str | None = None


@dataclass(slots=True)
class ScoreModel:
    """Optional external score; ``has_score`` is the presence flag."""

    value: float | None = None
    has_score: bool = False
    error: str | None = None

    def set(self, value: float) -> None:
        self.value = float(value)
        self.has_score = True
        self.error = None

    def fail(self, reason: str) -> None:
        self.value = None
        self.has_score = False
        self.error = reason


@dataclass(slots=True)
class TicketModel:
    key: str
    summary: str | None
    description: str | None
    created: datetime | None
    priority: str | None
    status: str | None = None
    issuetype: str | None = None
    comments: list[CommentModel] = field(default_factory=list)
    attachments: list[AttachmentModel] = field(default_factory=list)
    change_events: list[ChangeEventModel] = field(default_factory=list)

    # Derived metrics (populated later)
    resolution_hours: float | None = None
    final_state: str | None = None
    has_steps_to_reproduce: bool = False
    has_stack_trace: bool = False
    summary_words: int = 0
    description_words: int = 0
    comment_words: int = 0
    summary_description_words: int = 0
    sentiment: ScoreModel = field(default_factory=ScoreModel)
    grammar: ScoreModel = field(default_factory=ScoreModel)
