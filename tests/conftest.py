# tests/conftest.py

import json

import pytest

API = "https://api.github.com"


def link_header(path, page, last):
    """Link header GitHub sends for `page` of a `last`-page collection."""
    def url(n):
        return f"<{API}{path}?per_page=100&page={n}>"
    if page < last:
        return f'{url(page + 1)}; rel="next", {url(last)}; rel="last"'
    return f'{url(page - 1)}; rel="prev", {url(1)}; rel="first"'


def make_pull(number, login="alice", merged_at=None, **extra):
    pr = {
        "node_id": f"PR_{number}",
        "number": number,
        "title": f"PR {number}",
        "state": "closed" if merged_at else "open",
        "user": {"login": login, "node_id": f"U_{login}"},
        "created_at": "2023-01-01T00:00:00Z",
        "merged_at": merged_at,
        "closed_at": merged_at,
        "author_association": "CONTRIBUTOR",
        "base": {"label": "owner:main"},
        "draft": False,
        "locked": False,
        "requested_reviewers": [],
    }
    pr.update(extra)
    return pr


def make_commit(sha, login="alice", date="2023-05-01T10:00:00Z",
                message="Fix a bug", name=None):
    return {
        "sha": sha,
        "node_id": f"C_{sha}",
        "author": {"login": login, "node_id": f"U_{login}", "url": f"{API}/users/{login}",
                   "type": "User", "site_admin": False} if login else None,
        "committer": {"login": login, "node_id": f"U_{login}", "url": f"{API}/users/{login}",
                      "type": "User", "site_admin": False} if login else None,
        "commit": {
            "message": message,
            "comment_count": 0,
            "author": {"name": name or login, "date": date},
            "committer": {"name": name or login, "date": date},
            "verification": {"verified": True, "reason": "valid", "signature": "sig"},
        },
    }


# --- Dummy PyGithub client ---

class DummyRequester:
    """
    Stands in for github.Requester. `pages` maps page number to either a
    (status, headers, body) tuple or an exception to raise.
    """

    def __init__(self, pages=None):
        self.pages = pages or {}
        self.calls = []

    def requestJson(self, verb, url, parameters=None, headers=None, input=None):
        self.calls.append((verb, url, dict(parameters or {}), dict(headers or {})))
        outcome = self.pages[parameters["page"]]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, list):
            return outcome.pop(0) if len(outcome) > 1 else outcome[0]
        return outcome


class DummyGithub:
    def __init__(self, auth=None, timeout=None, retry=None):
        self.auth = auth
        self.timeout = timeout
        self.retry = retry
        self.requester = requester


requester = DummyRequester()


def page_of(path, records, page, last, rate_limit=5000, link=True):
    headers = {"X-RateLimit-Limit": str(rate_limit), "X-RateLimit-Remaining": "4999"}
    if link:
        headers["Link"] = link_header(path, page, last)
    return (200, headers, json.dumps(records))


@pytest.fixture
def github_pages(monkeypatch):
    """Patch PyGithub with a dummy whose pages the test fills in."""
    requester.pages = {}
    requester.calls = []
    monkeypatch.setattr("src.fetcher.Github", DummyGithub)
    return requester


@pytest.fixture(autouse=True)
def api_token(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("GITHUB_API_TOKEN", "fake-token")
