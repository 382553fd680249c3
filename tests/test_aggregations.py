from datetime import UTC, datetime

import pytest

from jira_insights.analytics.aggregations.correlation import (
    ANALYSES,
    TextField,
    attachments_analysis,
    category_mean,
    grammar_analysis,
    run_analysis,
    sentiment_analysis,
    stack_trace_analysis,
    steps_to_reproduce_analysis,
    wordiness_analysis,
)
from jira_insights.analytics.metrics.attachments import classify_ticket_attachments
from jira_insights.core.errors import UnsupportedAnalysisError, UnsupportedFieldError
from jira_insights.core.mappers import tickets_to_dataframe
from jira_insights.core.models import AttachmentModel, TicketModel


def _ticket(key, hours, *, priority="Critical", files=(), **derived):
    ticket = TicketModel(
        key=key,
        summary=f"Ticket {key}",
        description=None,
        created=datetime(2024, 9, 1, tzinfo=UTC),
        priority=priority,
        attachments=[AttachmentModel(name) for name in files],
        resolution_hours=hours,
    )
    for name, value in derived.items():
        setattr(ticket, name, value)
    classify_ticket_attachments(ticket)
    return ticket


def test_attachment_means_per_category():
    df = tickets_to_dataframe(
        [
            _ticket("OBS-1", 10.0, files=["a.png"]),
            _ticket("OBS-2", 20.0, files=["b.jpg", "c.png"]),
            _ticket("OBS-3", 5.0),
        ]
    )
    series = attachments_analysis(df)
    assert series.category_means == {"image": 15.0, "Without Attachments": 5.0}
    assert series.category_counts == {"image": 2, "Without Attachments": 1}
    assert series.keys == ["OBS-1", "OBS-2", "OBS-3"]


def test_attachment_ticket_counted_once_per_category():
    df = tickets_to_dataframe([_ticket("OBS-1", 8.0, files=["a.png", "trace.log"])])
    series = attachments_analysis(df)
    assert series.keys == ["OBS-1", "OBS-1"]
    assert series.metric == ["image", "text"]
    assert series.category_means["Without Attachments"] is None


def test_boolean_analysis_with_empty_category():
    df = tickets_to_dataframe(
        [
            _ticket("OBS-1", 4.0, has_steps_to_reproduce=True),
            _ticket("OBS-2", 6.0, has_steps_to_reproduce=True),
            _ticket("OBS-3", 50.0, priority="Minor"),
        ]
    )
    series = steps_to_reproduce_analysis(df)
    assert series.category_means == {"With Steps to Reproduce": 5.0, "Without Steps to Reproduce": None}
    assert series.skipped == {"low_priority": 1}


def test_stack_trace_analysis():
    df = tickets_to_dataframe(
        [
            _ticket("OBS-1", 2.0, has_stack_trace=True),
            _ticket("OBS-2", 6.0),
            _ticket("OBS-3", 10.0),
            _ticket("OBS-4", None, has_stack_trace=True),
        ]
    )
    series = stack_trace_analysis(df)
    assert series.category_means == {"With Stack Traces": 2.0, "Without Stack Traces": 8.0}
    assert series.skipped == {"unresolved": 1}


def test_wordiness_series_is_aligned():
    df = tickets_to_dataframe(
        [
            _ticket("OBS-1", 3.0, description_words=40),
            _ticket("OBS-2", 7.0, description_words=120),
        ]
    )
    series = wordiness_analysis(df, "description")
    assert series.analysis == "description_wordiness"
    assert list(zip(series.keys, series.metric, series.resolution_hours)) == [
        ("OBS-1", 40.0, 3.0),
        ("OBS-2", 120.0, 7.0),
    ]
    assert not series.is_categorical


def test_comment_wordiness_requires_comments():
    df = tickets_to_dataframe([_ticket("OBS-1", 3.0, comment_words=0), _ticket("OBS-2", 4.0, comment_words=9)])
    series = wordiness_analysis(df, TextField.parse("comment"))
    assert series.keys == ["OBS-2"]
    assert series.skipped == {"metric_out_of_bounds": 1}


def test_fields_wordiness_cap():
    df = tickets_to_dataframe(
        [
            _ticket("OBS-1", 3.0, summary_description_words=0),
            _ticket("OBS-2", 4.0, summary_description_words=999),
            _ticket("OBS-3", 5.0, summary_description_words=1000),
        ]
    )
    assert run_analysis(df, "fields_complexity").keys == ["OBS-2"]
    assert run_analysis(df, "fields_complexity", max_fields_words=2000).keys == ["OBS-2", "OBS-3"]


def test_sentiment_uses_only_scored_tickets():
    tickets = [_ticket(f"OBS-{i}", float(i + 1)) for i in range(5)]
    for ticket in tickets[:4]:
        ticket.sentiment.set(0.25)
    tickets[4].sentiment.fail("quota exceeded")
    series = sentiment_analysis(tickets_to_dataframe(tickets))
    assert len(series) == 4
    assert series.metric == [0.25] * 4
    assert series.skipped == {"no_score": 1}


def test_grammar_uses_only_scored_tickets():
    tickets = [_ticket(f"OBS-{i}", float(i + 1)) for i in range(4)]
    tickets[0].grammar.set(90.0)
    tickets[2].grammar.set(60.0)
    tickets[3].grammar.fail("bing-grammar: quota exceeded (429)")
    tickets[3].sentiment.set(0.5)
    series = grammar_analysis(tickets_to_dataframe(tickets))
    assert series.keys == ["OBS-0", "OBS-2"]
    assert series.metric == [90.0, 60.0]
    assert series.resolution_hours == [1.0, 3.0]
    assert series.skipped == {"no_score": 2}


def test_unclassified_attachments_still_categorised():
    ticket = TicketModel(
        key="OBS-1",
        summary="Ticket OBS-1",
        description=None,
        created=datetime(2024, 9, 1, tzinfo=UTC),
        priority="Critical",
        attachments=[AttachmentModel("a.png")],
        resolution_hours=10.0,
    )
    df = tickets_to_dataframe([ticket])
    assert df.loc[0, "attachment_categories"] == ["image"]
    assert attachments_analysis(df).category_means == {"image": 10.0, "Without Attachments": None}


def test_empty_frame_yields_empty_series():
    df = tickets_to_dataframe([])
    for name in ANALYSES:
        assert len(run_analysis(df, name)) == 0
    assert attachments_analysis(df).category_means == {"Without Attachments": None}


def test_unknown_field_and_analysis():
    with pytest.raises(UnsupportedFieldError):
        TextField.parse("labels")
    with pytest.raises(UnsupportedAnalysisError):
        run_analysis(tickets_to_dataframe([]), "velocity")


def test_category_mean_of_empty_is_undefined():
    assert category_mean(0.0, 0) is None
    assert category_mean(30.0, 2) == 15.0
