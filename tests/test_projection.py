# tests/test_projection.py

import pytest

from conftest import make_commit, make_pull
from src.config import ResourceKind
from src.projection import (COMMIT_HEADERS, ISSUE_HEADERS, PULL_REQUEST_HEADERS, Classification,
                            contributor_of, headers_for, is_merge_commit, project_commit,
                            project_issue, project_pull_request, projector_for)


def as_row(headers, values):
    assert len(headers) == len(values)
    return dict(zip(headers, values))


# --- Pull requests ---

def test_pull_request_defaults():
    pr = make_pull(7, merged_at=None)
    del pr["draft"]
    del pr["locked"]
    del pr["requested_reviewers"]

    row = as_row(PULL_REQUEST_HEADERS, project_pull_request(pr))

    assert row["pr_is_merged?"] == "not merged"
    assert row["closed_at"] == "not closed"
    assert row["is_draft"] is False
    assert row["is_locked"] is False
    assert row["count_reviews_requested"] == 0


def test_pull_request_fields():
    pr = make_pull(8, login="carol", merged_at="2023-03-03T00:00:00Z",
                   requested_reviewers=[{"login": "x"}, {"login": "y"}], draft=True)

    row = as_row(PULL_REQUEST_HEADERS, project_pull_request(pr))

    assert row["pr node_id"] == "PR_8"
    assert row["pr_number"] == 8
    assert row["base_label"] == "owner:main"
    assert row["pr_is_merged?"] == "2023-03-03T00:00:00Z"
    assert row["author"] == "carol"
    assert row["author_node_id"] == "U_carol"
    assert row["is_draft"] is True
    assert row["count_reviews_requested"] == 2


# --- Commits ---

def test_commit_message_truncated():
    commit = make_commit("a1", message="x" * 300)

    row = as_row(COMMIT_HEADERS, project_commit(commit))

    assert len(row["commit_message"]) == 256


def test_commit_author_falls_back_to_git_name():
    commit = make_commit("a1", login=None, name="Deleted User")

    row = as_row(COMMIT_HEADERS, project_commit(commit))

    assert row["commit_author_login"] == "Deleted User"
    assert row["commit_committer_login"] == "Deleted User"
    assert row["commit_author_node_id"] is None


def test_commit_fields():
    row = as_row(COMMIT_HEADERS, project_commit(make_commit("a1", "ann", date="2021-01-02T03:04:05Z")))

    assert row["commit_sha"] == "a1"
    assert row["commit_node_id"] == "C_a1"
    assert row["commit_comment_count"] == 0
    assert row["commit_author_date"] == "2021-01-02T03:04:05Z"
    assert row["commit_verification"] is True
    assert row["commit_verification_reason"] == "valid"
    assert row["commit_status"] is None


def test_plain_commit_is_not_a_merge():
    row = as_row(COMMIT_HEADERS, project_commit(make_commit("a1", "ann", message="Fix typo")))

    assert row["is_merge_commit"] is False
    assert row["may_be_self_merge"] is False
    assert row["committer_was_maintainer"] is Classification.UNKNOWN
    assert row["merge_author_login_included_in_commit_message"] is False


def test_merge_commit_heuristics_stay_unknown():
    message = "Merge bitcoin/bitcoin#123: tidy\n\nACKs for top commit:\n  ann:\n    ACK"
    row = as_row(COMMIT_HEADERS, project_commit(make_commit("m1", "ann", message=message)))

    assert row["is_merge_commit"] is True
    assert row["may_be_self_merge"] is Classification.UNKNOWN
    assert str(row["committer_was_maintainer"]) == "unknown"
    assert row["merge_author_login_included_in_commit_message"] is True


@pytest.mark.parametrize("message, expected", [
    ("Merge bitcoin/bitcoin#1: x", True),
    ("Some change\n\nACKs for top commit:", True),
    ("Merge branch 'main'", False),
    ("", False),
])
def test_is_merge_commit(message, expected):
    assert is_merge_commit(message) is expected


# --- Issues ---

def test_issue_marks_pull_requests():
    issue = {"number": 3, "node_id": "I_3", "title": "t", "user": {"login": "dan"},
             "state": "open", "created_at": "2023-01-01", "closed_at": None, "comments": 2,
             "pull_request": {"url": "http://example.com/pr"}}

    row = as_row(ISSUE_HEADERS, project_issue(issue))

    assert row["closed_at"] == "not closed"
    assert row["is_pull_request"] is True
    assert row["user"] == "dan"


# --- Dispatch by resource kind ---

@pytest.mark.parametrize("kind, projector, headers", [
    (ResourceKind.PULLS, project_pull_request, PULL_REQUEST_HEADERS),
    (ResourceKind.COMMITS, project_commit, COMMIT_HEADERS),
    (ResourceKind.ISSUES, project_issue, ISSUE_HEADERS),
])
def test_projector_for_kind(kind, projector, headers):
    assert projector_for(kind) is projector
    assert headers_for(kind) == headers


def test_contributor_of():
    assert contributor_of(ResourceKind.COMMITS, make_commit("a", None, name="Raw")) == "Raw"
    assert contributor_of(ResourceKind.PULLS, make_pull(1, login="eve")) == "eve"
