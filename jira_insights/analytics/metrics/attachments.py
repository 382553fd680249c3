"""Attachment classification by file extension."""

from __future__ import annotations

from enum import StrEnum

from jira_insights.core.config import ATTACHMENT_EXTENSIONS, DEFAULT_ATTACHMENT_CATEGORY
from jira_insights.core.models import TicketModel


class AttachmentCategory(StrEnum):
    IMAGE = "image"
    TEXT = "text"
    CODE = "code"
    VIDEO = "video"
    ARCHIVE = "archive"
    CONFIG = "config"
    SPREADSHEET = "spreadsheet"
    OTHER = "other"


def attachment_extension(filename: str | None) -> str:
    """Lower-cased substring after the last dot, or "" when there is none."""
    if not filename:
        return ""
    name = filename.strip()
    idx = name.rfind(".")
    if idx < 0:
        return ""
    return name[idx + 1 :].lower()


def classify_attachment(filename: str | None) -> AttachmentCategory:
    """Map a filename to exactly one category.

    Matching is case-insensitive. Unknown or missing extensions fall back
    to ``code``.

    >>> classify_attachment("Screenshot.PNG")
    <AttachmentCategory.IMAGE: 'image'>
    >>> classify_attachment("Makefile")
    <AttachmentCategory.CODE: 'code'>
    """
    ext = attachment_extension(filename)
    return AttachmentCategory(ATTACHMENT_EXTENSIONS.get(ext, DEFAULT_ATTACHMENT_CATEGORY))


def classify_ticket_attachments(ticket: TicketModel) -> list[str]:
    """Set ``category`` on each attachment and return the distinct categories in first-seen order."""
    seen: list[str] = []
    for attachment in ticket.attachments:
        category = classify_attachment(attachment.filename).value
        attachment.category = category
        if category not in seen:
            seen.append(category)
    return seen
