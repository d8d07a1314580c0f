"""
projection.py

Flatten one decoded GitHub record (pull request, commit or issue) into a
tuple of fields in the order of the matching CSV header.
"""

from enum import Enum

from src.config import ResourceKind

MESSAGE_LIMIT = 256
MERGE_MESSAGE_MARKERS = ('acks for top commit',)
MERGE_MESSAGE_PREFIXES = ('merge bitcoin',)

PULL_REQUEST_HEADERS = [
    'pr node_id',
    'pr_number',
    'base_label',
    'created_at',
    'pr_title',
    'pr_is_merged?',
    'status',
    'closed_at',
    'author',
    'author_node_id',
    'author_association',
    'is_draft',
    'is_locked',
    'count_reviews_requested',
]

COMMIT_HEADERS = [
    'commit_sha',
    'commit_node_id',
    'commit_comment_count',
    'commit_author_login',
    'commit_committer_login',
    'commit_author_node_id',
    'commit_committer_node_id',
    'commit_author_url',
    'commit_committer_url',
    'commit_committer_date',
    'commit_author_date',
    'commit_author_type',
    'commit_author_site_admin',
    'commit_committer_type',
    'commit_committer_site_admin',
    'commit_message',
    'commit_verification',
    'commit_verification_reason',
    'commit_verification_signature',
    'commit_status',
    'is_merge_commit',
    'may_be_self_merge',
    'committer_was_maintainer',
    'merge_author_login_included_in_commit_message',
]

ISSUE_HEADERS = [
    'issue_number',
    'issue_node_id',
    'title',
    'user',
    'state',
    'created_at',
    'closed_at',
    'comments',
    'is_pull_request',
]


class Classification(Enum):
    """Result of a commit heuristic nobody has worked out yet."""
    UNKNOWN = 'unknown'

    def __str__(self):
        return self.value


def dig(record, *keys):
    """Follow nested keys, returning None as soon as one is missing or null."""
    for key in keys:
        if not isinstance(record, dict):
            return None
        record = record.get(key)
    return record


# --- Pull requests ---

def project_pull_request(pull_request: dict) -> tuple:
    user = pull_request.get('user') or {}
    merged_at = pull_request.get('merged_at') or 'not merged'
    closed_at = pull_request.get('closed_at') or 'not closed'
    reviewers = pull_request.get('requested_reviewers') or []

    return (
        pull_request.get('node_id'),
        pull_request.get('number'),
        dig(pull_request, 'base', 'label'),
        pull_request.get('created_at'),
        pull_request.get('title'),
        merged_at,
        pull_request.get('state'),
        closed_at,
        user.get('login'),
        user.get('node_id'),
        pull_request.get('author_association'),
        pull_request.get('draft') or False,
        pull_request.get('locked') or False,
        len(reviewers),
    )


# --- Commits ---

def commit_message(commit: dict) -> str:
    return dig(commit, 'commit', 'message') or ''


def author_login(commit: dict):
    """
    Login of the linked GitHub account, or the raw git author name when the
    account is deleted or was never linked.
    """
    if commit.get('author') is None:
        return dig(commit, 'commit', 'author', 'name')
    return dig(commit, 'author', 'login')


def committer_login(commit: dict):
    if commit.get('committer') is None:
        return dig(commit, 'commit', 'committer', 'name')
    return dig(commit, 'committer', 'login')


def is_merge_commit(message: str, markers=MERGE_MESSAGE_MARKERS,
                    prefixes=MERGE_MESSAGE_PREFIXES) -> bool:
    lowered = (message or '').lower()
    return (any(m in lowered for m in markers)
            or any(lowered.startswith(p) for p in prefixes))


def author_login_in_message(commit: dict) -> bool:
    login = author_login(commit)
    if not login:
        return False
    return login.lower() in commit_message(commit).lower()


def may_be_self_merge(commit: dict, merge_commit: bool):
    if not merge_commit:
        return False
    return Classification.UNKNOWN


def committer_was_maintainer_on_commit_date(commit: dict):
    # Needs a dated list of maintainer signing keys, which the API does not expose.
    return Classification.UNKNOWN


def project_commit(commit: dict) -> tuple:
    message = commit_message(commit)[:MESSAGE_LIMIT]
    merge_commit = is_merge_commit(message)

    return (
        commit.get('sha'),
        commit.get('node_id'),
        dig(commit, 'commit', 'comment_count'),
        author_login(commit),
        committer_login(commit),
        dig(commit, 'author', 'node_id'),
        dig(commit, 'committer', 'node_id'),
        dig(commit, 'author', 'url'),
        dig(commit, 'committer', 'url'),
        dig(commit, 'commit', 'committer', 'date'),
        dig(commit, 'commit', 'author', 'date'),
        dig(commit, 'author', 'type'),
        dig(commit, 'author', 'site_admin'),
        dig(commit, 'committer', 'type'),
        dig(commit, 'committer', 'site_admin'),
        message,
        dig(commit, 'commit', 'verification', 'verified'),
        dig(commit, 'commit', 'verification', 'reason'),
        dig(commit, 'commit', 'verification', 'signature'),
        dig(commit, 'commit', 'status'),
        merge_commit,
        may_be_self_merge(commit, merge_commit),
        committer_was_maintainer_on_commit_date(commit),
        merge_commit and author_login_in_message(commit),
    )


# --- Issues ---

def project_issue(issue: dict) -> tuple:
    return (
        issue.get('number'),
        issue.get('node_id'),
        issue.get('title'),
        dig(issue, 'user', 'login'),
        issue.get('state'),
        issue.get('created_at'),
        issue.get('closed_at') or 'not closed',
        issue.get('comments', 0),
        'pull_request' in issue,
    )


_PROJECTORS = {
    ResourceKind.PULLS: (project_pull_request, PULL_REQUEST_HEADERS),
    ResourceKind.COMMITS: (project_commit, COMMIT_HEADERS),
    ResourceKind.ISSUES: (project_issue, ISSUE_HEADERS),
}


def projector_for(kind: ResourceKind):
    return _PROJECTORS[kind][0]


def headers_for(kind: ResourceKind) -> list:
    return list(_PROJECTORS[kind][1])


def contributor_of(kind: ResourceKind, record: dict):
    """Identity a record is counted under in contributor summaries."""
    if kind is ResourceKind.COMMITS:
        return author_login(record)
    return dig(record, 'user', 'login')
