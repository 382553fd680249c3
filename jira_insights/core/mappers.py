"""Mapping raw Jira issue JSON into TicketModel instances and back out to frames/records."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict
from datetime import datetime
from typing import Any

import pandas as pd

from jira_insights.analytics.metrics.attachments import classify_attachment

from .config import TICKET_FRAME_COLUMNS
from .models import AttachmentModel, ChangeEventModel, CommentModel, ScoreModel, TicketModel


def parse_dt(val) -> datetime | None:
    if not val:
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def adf_to_text(value: Any) -> str | None:
    """Flatten Atlassian Document Format (REST v3 rich text) into plain text.

    Paragraph-like blocks end with a newline and list items are prefixed
    with ``*`` so bullet lists survive the conversion. Plain strings pass
    through unchanged.
    """
    if value is None or isinstance(value, str):
        return value
    if not isinstance(value, dict):
        return str(value)

    out: list[str] = []

    def walk(node: Any):
        if isinstance(node, list):
            for item in node:
                walk(item)
            return
        if not isinstance(node, dict):
            return
        node_type = node.get("type")
        if node_type == "text":
            out.append(node.get("text") or "")
            return
        if node_type == "hardBreak":
            out.append("\n")
            return
        if node_type == "listItem":
            out.append("* ")
        walk(node.get("content") or [])
        if node_type in {"paragraph", "heading", "codeBlock"} and not (out and out[-1].endswith("\n")):
            out.append("\n")

    walk(value)
    return "".join(out).rstrip("\n")


def _display_name(person: Any) -> str | None:
    if not isinstance(person, dict):
        return None
    return person.get("displayName") or person.get("name")


def _flatten_histories(histories_raw: list[dict[str, Any]]) -> list[ChangeEventModel]:
    # Stable sort: items sharing a history entry keep Jira's order.
    dated = [(parse_dt(h.get("created")), idx, h) for idx, h in enumerate(histories_raw)]
    dated.sort(key=lambda t: (t[0] is None, t[0] or datetime.min, t[1]))
    events: list[ChangeEventModel] = []
    for created, _, h in dated:
        author = _display_name(h.get("author"))
        for item in h.get("items") or []:
            events.append(
                ChangeEventModel(
                    timestamp=created,
                    field=item.get("field"),
                    from_value=item.get("fromString"),
                    to_value=item.get("toString"),
                    author=author,
                )
            )
    return events


def map_issue(raw: dict[str, Any]) -> TicketModel:
    fields = raw.get("fields", {}) or {}

    comments_raw = (fields.get("comment") or {}).get("comments", []) or []
    comments = [
        CommentModel(
            author=_display_name(c.get("author")),
            created=parse_dt(c.get("created")),
            body=adf_to_text(c.get("body")),
        )
        for c in comments_raw
    ]
    attachments = [
        AttachmentModel(
            filename=a.get("filename"),
            size=int(a.get("size") or 0),
            created=parse_dt(a.get("created")),
            mime_type=a.get("mimeType"),
        )
        for a in fields.get("attachment", []) or []
    ]
    histories_raw = (raw.get("changelog") or {}).get("histories", []) or []

    return TicketModel(
        key=raw.get("key"),
        summary=fields.get("summary"),
        description=adf_to_text(fields.get("description")),
        created=parse_dt(fields.get("created")),
        priority=(fields.get("priority") or {}).get("name") if fields.get("priority") else None,
        status=(fields.get("status") or {}).get("name") if fields.get("status") else None,
        issuetype=(fields.get("issuetype") or {}).get("name") if fields.get("issuetype") else None,
        comments=comments,
        attachments=attachments,
        change_events=_flatten_histories(histories_raw),
    )


def tickets_to_dataframe(tickets: Iterable[TicketModel]) -> pd.DataFrame:
    rows = []
    for t in tickets:
        categories: list[str] = []
        for a in t.attachments:
            category = a.category or classify_attachment(a.filename).value
            if category not in categories:
                categories.append(category)
        rows.append(
            {
                "key": t.key,
                "summary": t.summary,
                "priority": t.priority or "None",
                "status": t.status,
                "created": t.created,
                "resolution_hours": t.resolution_hours,
                "final_state": t.final_state,
                "summary_words": t.summary_words,
                "description_words": t.description_words,
                "comment_words": t.comment_words,
                "summary_description_words": t.summary_description_words,
                "attachment_categories": categories,
                "has_attachments": bool(t.attachments),
                "has_steps_to_reproduce": t.has_steps_to_reproduce,
                "has_stack_trace": t.has_stack_trace,
                "sentiment_score": t.sentiment.value if t.sentiment.has_score else None,
                "has_sentiment": t.sentiment.has_score,
                "grammar_score": t.grammar.value if t.grammar.has_score else None,
                "has_grammar": t.grammar.has_score,
            }
        )
    df = pd.DataFrame(rows, columns=list(TICKET_FRAME_COLUMNS))
    df["resolution_hours"] = pd.to_numeric(df["resolution_hours"], errors="coerce")
    for col in ("sentiment_score", "grammar_score"):
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


# ------------------ Store Records ------------------
def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def ticket_to_record(ticket: TicketModel) -> dict[str, Any]:
    """JSON-safe dict for persistence (timestamps as ISO-8601 strings)."""
    record = asdict(ticket)
    record["created"] = _dt_to_str(ticket.created)
    for comment, src in zip(record["comments"], ticket.comments, strict=True):
        comment["created"] = _dt_to_str(src.created)
    for attachment, src in zip(record["attachments"], ticket.attachments, strict=True):
        attachment["created"] = _dt_to_str(src.created)
    for event, src in zip(record["change_events"], ticket.change_events, strict=True):
        event["timestamp"] = _dt_to_str(src.timestamp)
    return record


def ticket_from_record(record: dict[str, Any]) -> TicketModel:
    return TicketModel(
        key=record["key"],
        summary=record.get("summary"),
        description=record.get("description"),
        created=parse_dt(record.get("created")),
        priority=record.get("priority"),
        status=record.get("status"),
        issuetype=record.get("issuetype"),
        comments=[
            CommentModel(author=c.get("author"), created=parse_dt(c.get("created")), body=c.get("body"))
            for c in record.get("comments") or []
        ],
        attachments=[
            AttachmentModel(
                filename=a.get("filename"),
                size=int(a.get("size") or 0),
                created=parse_dt(a.get("created")),
                mime_type=a.get("mime_type"),
                category=a.get("category"),
            )
            for a in record.get("attachments") or []
        ],
        change_events=[
            ChangeEventModel(
                timestamp=parse_dt(e.get("timestamp")),
                field=e.get("field"),
                from_value=e.get("from_value"),
                to_value=e.get("to_value"),
                author=e.get("author"),
            )
            for e in record.get("change_events") or []
        ],
        resolution_hours=record.get("resolution_hours"),
        final_state=record.get("final_state"),
        has_steps_to_reproduce=bool(record.get("has_steps_to_reproduce")),
        has_stack_trace=bool(record.get("has_stack_trace")),
        summary_words=int(record.get("summary_words") or 0),
        description_words=int(record.get("description_words") or 0),
        comment_words=int(record.get("comment_words") or 0),
        summary_description_words=int(record.get("summary_description_words") or 0),
        sentiment=ScoreModel(**(record.get("sentiment") or {})),
        grammar=ScoreModel(**(record.get("grammar") or {})),
    )
