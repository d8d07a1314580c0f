"""
config.py

Run configuration for the paged exporters: which resource to pull, where
to write it, and how the client should behave. Validated once at startup.
"""

import os
from dataclasses import dataclass
from enum import Enum

from src.errors import ArgumentError

TOKEN_ENV_VARS = ('GITHUB_API_TOKEN', 'GITHUB_TOKEN')
DEFAULT_PAGE_SIZE = 100
DEFAULT_JSON_DIR = 'json_outputs'
DEFAULT_TIMEOUT = 15


class ResourceKind(Enum):
    PULLS = 'pulls'
    COMMITS = 'commits'
    ISSUES = 'issues'


class GuardField(Enum):
    LIMIT = 'x-ratelimit-limit'
    REMAINING = 'x-ratelimit-remaining'


@dataclass(frozen=True)
class ExportConfig:
    repo: str
    kind: ResourceKind
    output_file: str
    token: str
    start_page: int = 1
    per_page: int = DEFAULT_PAGE_SIZE
    json_dir: str = DEFAULT_JSON_DIR
    timeout: int = DEFAULT_TIMEOUT
    max_retries: int = 1
    skip_failed_pages: bool = False
    guard_field: GuardField = GuardField.LIMIT
    since: str = None
    until: str = None

    @property
    def checkpoint_name(self) -> str:
        return checkpoint_name_for(self.kind)


def checkpoint_name_for(kind: ResourceKind) -> str:
    """File name prefix of the JSON checkpoints written for `kind`."""
    return f"github_{kind.value}"


def read_token(environ=None) -> str:
    """
    Return the first API token found in the environment, or None.
    """
    environ = os.environ if environ is None else environ
    for name in TOKEN_ENV_VARS:
        token = environ.get(name)
        if token:
            return token
    return None


def load_config(repo: str, kind: ResourceKind, output_file: str,
                start_page=1, environ=None, **options) -> ExportConfig:
    """
    Validate the command-line values and the environment and build an
    ExportConfig. Raises ArgumentError naming the first bad value.
    """
    if not repo:
        raise ArgumentError("Please provide a repo name")
    owner, _, name = repo.partition('/')
    if not owner or not name or '/' in name:
        raise ArgumentError(f"Repo must be given as owner/name, got {repo!r}")
    if not output_file:
        raise ArgumentError("Please provide an output file name")

    try:
        start_page = int(start_page)
    except (TypeError, ValueError):
        raise ArgumentError(f"Page number must be an integer, got {start_page!r}")
    if start_page < 1:
        raise ArgumentError(f"Page number must be 1 or greater, got {start_page}")

    token = read_token(environ)
    if not token:
        raise ArgumentError(
            "Please provide a GitHub API token like GITHUB_API_TOKEN=<your_token>"
        )

    if options.get('max_retries', 1) < 0:
        raise ArgumentError("Retries cannot be negative")
    if options.get('timeout', DEFAULT_TIMEOUT) <= 0:
        raise ArgumentError("Timeout must be positive")

    return ExportConfig(repo=repo, kind=kind, output_file=output_file,
                        token=token, start_page=start_page, **options)


def resource_path(repo: str, kind: ResourceKind) -> str:
    return f"/repos/{repo}/{kind.value}"


def build_query_parameters(kind: ResourceKind, page_number: int,
                           per_page: int = DEFAULT_PAGE_SIZE,
                           since: str = None, until: str = None) -> dict:
    """
    Query string for one page of the given resource kind.

    The commits endpoint has no state or sort filters but does accept a
    since/until window; issues accept only since.
    """
    if kind is ResourceKind.COMMITS:
        params = {'per_page': per_page, 'page': page_number}
        if since:
            params['since'] = since
        if until:
            params['until'] = until
        return params

    params = {
        'state': 'all',
        'per_page': per_page,
        'page': page_number,
        'sort': 'created',
    }
    if kind is ResourceKind.ISSUES and since:
        params['since'] = since
    return params
