import json

import pytest

from jira_insights.core.errors import StoreError
from jira_insights.core.mappers import adf_to_text, map_issue, ticket_from_record, ticket_to_record
from jira_insights.core.store import TicketStore


def _sample_raw():
    return {
        "key": "OBS-42",
        "fields": {
            "summary": "M1M3 raise fails",
            "description": "Steps:\n* raise mirror\n* watch the log",
            "created": "2024-09-01T10:00:00.000+0000",
            "priority": {"name": "Critical"},
            "status": {"name": "Closed"},
            "issuetype": {"name": "Bug"},
            "comment": {
                "comments": [
                    {
                        "author": {"displayName": "Alice"},
                        "created": "2024-09-01T12:00:00.000+0000",
                        "body": "Reproduced twice",
                    }
                ],
                "total": 1,
            },
            "attachment": [
                {"filename": "screen.png", "size": 1200, "created": "2024-09-01T11:00:00.000+0000", "mimeType": "image/png"}
            ],
        },
        "changelog": {
            "histories": [
                {
                    "created": "2024-09-01T15:00:00.000+0000",
                    "author": {"displayName": "Bob"},
                    "items": [{"field": "status", "fromString": "Open", "toString": "Closed"}],
                },
                {
                    "created": "2024-09-01T11:00:00.000+0000",
                    "author": {"displayName": "Bob"},
                    "items": [
                        {"field": "assignee", "fromString": None, "toString": "Bob"},
                        {"field": "priority", "fromString": "Major", "toString": "Critical"},
                    ],
                },
            ]
        },
    }


def test_map_issue_fields():
    ticket = map_issue(_sample_raw())
    assert ticket.key == "OBS-42"
    assert ticket.priority == "Critical"
    assert ticket.created.isoformat() == "2024-09-01T10:00:00+00:00"
    assert ticket.comments[0].author == "Alice"
    assert ticket.attachments[0].filename == "screen.png"
    assert ticket.attachments[0].mime_type == "image/png"


def test_change_events_sorted_stably():
    events = map_issue(_sample_raw()).change_events
    assert [e.field for e in events] == ["assignee", "priority", "status"]
    assert events[-1].from_value == "Open"
    assert events[-1].author == "Bob"


def test_adf_description_flattened():
    adf = {
        "type": "doc",
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": "Steps:"}]},
            {
                "type": "bulletList",
                "content": [
                    {"type": "listItem", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "one"}]}]},
                    {"type": "listItem", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "two"}]}]},
                ],
            },
        ],
    }
    assert adf_to_text(adf) == "Steps:\n* one\n* two"
    assert adf_to_text("plain") == "plain"
    assert adf_to_text(None) is None


def test_record_round_trip_is_json_safe():
    ticket = map_issue(_sample_raw())
    ticket.sentiment.set(0.2)
    record = ticket_to_record(ticket)
    restored = ticket_from_record(json.loads(json.dumps(record)))
    assert restored == ticket


def test_store_upsert_is_idempotent(tmp_path):
    store = TicketStore(tmp_path / "tickets")
    ticket = map_issue(_sample_raw())
    store.upsert([ticket])
    store.upsert([ticket])
    assert store.count() == 1
    assert store.keys() == ["OBS-42"]
    assert store.get("OBS-42") == ticket
    assert store.get("OBS-404") is None


def test_store_replaces_by_key(tmp_path):
    store = TicketStore(tmp_path)
    ticket = map_issue(_sample_raw())
    store.upsert([ticket])
    ticket.summary = "Updated summary"
    store.upsert([ticket])
    assert [t.summary for t in store.all()] == ["Updated summary"]
    assert store.delete("OBS-42")
    assert not store.delete("OBS-42")


def test_store_rejects_bad_keys_and_documents(tmp_path):
    store = TicketStore(tmp_path)
    with pytest.raises(StoreError):
        store.get("../escape")
    (tmp_path / "OBS-9.json").write_text("{not json")
    with pytest.raises(StoreError):
        store.get("OBS-9")
