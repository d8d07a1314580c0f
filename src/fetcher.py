"""
fetcher.py

One authenticated GET against a paged GitHub collection, plus the
rate-limit check every page response has to pass.
"""

import logging
from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlparse

import requests
from github import Auth, Github

from src.config import GuardField
from src.errors import ArgumentError, RateLimitError, TransportError

logger = logging.getLogger(__name__)

ACCEPT_HEADER = 'application/vnd.github.v3+json'
RATE_LIMIT_FLOOR = 500
RATE_LIMIT_WARNING = 1000


@dataclass(frozen=True)
class PageRequest:
    path: str
    page_number: int
    params: dict = field(default_factory=dict)


@dataclass
class PageResponse:
    status: int
    body: str
    headers: dict
    page_number: int
    last_page: int


def _page_from_url(url: str):
    values = parse_qs(urlparse(url).query).get('page')
    if not values:
        return None
    try:
        page = int(values[0])
    except ValueError:
        return None
    return page if page >= 1 else None


def parse_last_page(link_header: str, page_number: int) -> int:
    """
    Read the last page number advertised in a `link` header.

    The `rel="last"` entry wins. Without one, the second comma-separated
    segment is used, which is where GitHub puts it on every page but the
    last. A missing or unreadable header means this page is the last one.
    """
    if not link_header:
        return page_number

    segments = [s.strip() for s in link_header.split(',') if s.strip()]
    entries = []
    for segment in segments:
        url_part, _, rel_part = segment.partition(';')
        url = url_part.strip().lstrip('<').rstrip('>')
        entries.append((url, rel_part))

    for url, rel in entries:
        if 'rel="last"' in rel:
            last = _page_from_url(url)
            if last is not None:
                return last

    if len(entries) > 1:
        second = _page_from_url(entries[1][0])
        if second is not None:
            return second

    return page_number


class PageFetcher:
    """
    Issues GET requests through PyGithub's requester so the Authorization
    header, base URL and timeout come from the client. PyGithub's own retry
    is switched off: retries are decided by the pagination driver.
    """

    def __init__(self, token: str, timeout: int = 15):
        if not token:
            raise ArgumentError("A GitHub API token is required")
        self._github = Github(auth=Auth.Token(token), timeout=timeout, retry=None)

    def fetch(self, request: PageRequest) -> PageResponse:
        if request.page_number < 1:
            raise ArgumentError(f"Page number must be 1 or greater, got {request.page_number}")

        params = dict(request.params)
        params['page'] = request.page_number
        logger.info("Making request to %s page %s", request.path, request.page_number)

        try:
            status, headers, body = self._github.requester.requestJson(
                'GET', request.path, parameters=params,
                headers={'Accept': ACCEPT_HEADER},
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request for page {request.page_number} failed: {e}") from e

        if status >= 400:
            raise TransportError(
                f"GitHub answered {status} for page {request.page_number}",
                retryable=status >= 500,
                status=status,
            )

        headers = {k.lower(): v for k, v in (headers or {}).items()}
        last_page = parse_last_page(headers.get('link'), request.page_number)
        logger.debug("Last page number: %s", last_page)
        return PageResponse(status=status, body=body, headers=headers,
                            page_number=request.page_number, last_page=last_page)


class RateLimitGuard:
    """
    Stops the run when the API credential is close to exhausted.

    By default the `x-ratelimit-limit` ceiling is checked. GuardField.REMAINING
    checks the calls left in the current window instead.
    """

    def __init__(self, guard_field: GuardField = GuardField.LIMIT,
                 floor: int = RATE_LIMIT_FLOOR, warning: int = RATE_LIMIT_WARNING):
        self.field = guard_field
        self.floor = floor
        self.warning = warning

    def check(self, headers: dict) -> int:
        raw = headers.get(self.field.value)
        try:
            ceiling = int(raw)
        except (TypeError, ValueError):
            logger.warning("No usable %s header (%r); continuing", self.field.value, raw)
            return None

        if ceiling < self.floor:
            raise RateLimitError(ceiling)
        if ceiling < self.warning:
            logger.warning("Warning: rate limit is %s", ceiling)
        return ceiling
