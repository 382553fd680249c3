from types import SimpleNamespace

import pytest

from jira_insights.core.jira_client import JiraAPI


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.text = str(payload)

    def json(self):
        return self._payload


class PagedSession:
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def get(self, url, params=None):
        self.calls.append((url, dict(params or {})))
        return self.pages[len(self.calls) - 1]


def _api(session, cache_ttl=300.0):
    api = JiraAPI.__new__(JiraAPI)
    api.server = "https://example.atlassian.net"
    api.client = SimpleNamespace(_session=session)
    api.cache_ttl = cache_ttl
    api._search_cache = {}
    return api


def test_search_follows_page_tokens_and_caches():
    session = PagedSession(
        [
            FakeResponse({"issues": [{"key": "OBS-1"}], "nextPageToken": "abc"}),
            FakeResponse({"issues": [{"key": "OBS-2"}], "isLast": True}),
        ]
    )
    api = _api(session)
    issues = api.search_tickets("project = OBS", fields=["summary"], expand=["changelog"])
    assert [i["key"] for i in issues] == ["OBS-1", "OBS-2"]
    assert session.calls[0][0] == "https://example.atlassian.net/rest/api/2/search/jql"
    assert "nextPageToken" not in session.calls[0][1]
    assert session.calls[1][1]["nextPageToken"] == "abc"
    assert session.calls[0][1]["expand"] == "changelog"

    assert api.search_tickets("project = OBS", fields=["summary"], expand=["changelog"]) == issues
    assert len(session.calls) == 2
    api.clear_cache()
    assert api._search_cache == {}


def test_search_error_raises_runtime_error():
    api = _api(PagedSession([FakeResponse({"errorMessages": ["bad jql"]}, status_code=400)]))
    with pytest.raises(RuntimeError, match="400"):
        api.search_tickets("project = ???")
