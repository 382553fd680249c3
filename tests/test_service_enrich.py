import threading

from jira_insights.core.jira_client import JiraAPI
from jira_insights.core.service import TicketService
from jira_insights.core.settings import AnalysisSettings
from jira_insights.core.store import TicketStore
from jira_insights.scoring.base import Scorer, ScoreTarget


class DummyAPI(JiraAPI):
    def __init__(self, comments_total=1):
        self.server = "https://example.atlassian.net"
        self.comments_total = comments_total
        self.queries = []
        self.hydrated = []

    def search_tickets(self, jql, fields=(), expand=(), page_size=100):
        self.queries.append((jql, fields, expand))
        return [
            {
                "key": "OBS-1",
                "fields": {
                    "summary": "Dome rotation stalls",
                    "description": (
                        "* home the dome\n* rotate 90 deg\n"
                        "java.lang.IllegalStateException: stalled\n"
                        "\tat org.lsst.Dome.rotate(Dome.java:12)\n"
                        "\tat org.lsst.Dome.main(Dome.java:3)"
                    ),
                    "created": "2024-09-01T10:00:00.000+0000",
                    "priority": {"name": "Critical"},
                    "status": {"name": "Closed"},
                    "issuetype": {"name": "Bug"},
                    "comment": {
                        "comments": [{"author": {"displayName": "Alice"}, "body": "still seen"}],
                        "total": self.comments_total,
                    },
                    "attachment": [{"filename": "dome.mp4"}, {"filename": "notes.txt"}],
                },
                "changelog": {
                    "histories": [
                        {
                            "created": "2024-09-01T16:00:00.000+0000",
                            "items": [{"field": "status", "fromString": "Open", "toString": "Closed"}],
                        }
                    ]
                },
            },
            {"fields": {"summary": "missing key"}},
        ]

    def fetch_ticket_raw(self, issue_key):
        self.hydrated.append(issue_key)
        return {
            "key": issue_key,
            "fields": {
                "comment": {
                    "comments": [
                        {"author": {"displayName": "Alice"}, "body": "still seen"},
                        {"author": {"displayName": "Bob"}, "body": "fixed by restart"},
                    ]
                }
            },
        }


def test_fetch_and_enrich():
    api = DummyAPI()
    svc = TicketService(api, settings=AnalysisSettings())
    tickets = svc.fetch_and_enrich("OBS")
    assert [t.key for t in tickets] == ["OBS-1"]
    ticket = tickets[0]
    assert ticket.resolution_hours == 6.0
    assert ticket.final_state == "Closed"
    assert ticket.has_steps_to_reproduce
    assert ticket.has_stack_trace
    assert ticket.summary_words == 3
    assert ticket.comment_words == 2
    assert ticket.summary_description_words == ticket.summary_words + ticket.description_words
    assert [a.category for a in ticket.attachments] == ["video", "text"]
    jql, fields, expand = api.queries[0]
    assert jql == "project = OBS ORDER BY created ASC"
    assert "attachment" in fields
    assert tuple(expand) == ("changelog",)
    assert api.hydrated == []


def test_truncated_comments_are_hydrated():
    api = DummyAPI(comments_total=2)
    tickets = TicketService(api, settings=AnalysisSettings()).fetch_project("OBS")
    assert api.hydrated == ["OBS-1"]
    assert [c.body for c in tickets[0].comments] == ["still seen", "fixed by restart"]


def test_max_days_adds_date_clause():
    api = DummyAPI()
    TicketService(api, settings=AnalysisSettings()).fetch_project("OBS", max_days=30)
    assert "AND created >= '" in api.queries[0][0]


def test_enrich_keeps_scores_and_frame_columns():
    api = DummyAPI()
    svc = TicketService(api, settings=AnalysisSettings())
    tickets = svc.fetch_and_enrich("OBS")
    tickets[0].grammar.set(88.0)
    svc.enrich(tickets)
    df = svc.to_frame(tickets)
    assert df.loc[0, "grammar_score"] == 88.0
    assert bool(df.loc[0, "has_grammar"])
    assert df.loc[0, "attachment_categories"] == ["video", "text"]


class HalfSentiment(Scorer):
    name = "half-sentiment"
    target = ScoreTarget.SENTIMENT

    def score(self, text):
        return 0.5


def test_score_persists_to_store(tmp_path):
    svc = TicketService(DummyAPI(), settings=AnalysisSettings())
    tickets = svc.fetch_and_enrich("OBS")
    store = TicketStore(tmp_path / "store")
    report = svc.score(tickets, [HalfSentiment()], store=store)
    assert report.scored == {"sentiment": 1}
    stored = store.get("OBS-1")
    assert stored.sentiment.has_score
    assert stored.sentiment.value == 0.5


def test_cancelled_score_still_persists(tmp_path):
    svc = TicketService(DummyAPI(), settings=AnalysisSettings())
    tickets = svc.fetch_and_enrich("OBS")
    cancel = threading.Event()
    cancel.set()
    store = TicketStore(tmp_path / "store")
    report = svc.score(tickets, [HalfSentiment()], cancel_event=cancel, store=store)
    assert report.cancelled
    assert store.keys() == ["OBS-1"]
    assert not store.get("OBS-1").sentiment.has_score
