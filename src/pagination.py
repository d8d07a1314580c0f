"""
pagination.py

Walks a paged GitHub collection from a starting page until the API says
there are no more pages, passing each page's decoded records to a callback.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List

from src.errors import DecodeError, TransportError
from src.fetcher import PageRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 1
    skip_failed_pages: bool = False
    backoff: float = 1.0


@dataclass
class RunResult:
    pages_fetched: int = 0
    records: int = 0
    last_page: int = 0
    skipped_pages: List[int] = field(default_factory=list)
    cancelled: bool = False


def decode_records(body: str) -> list:
    """
    Decode a page body. GitHub collection endpoints return a JSON array of
    objects; anything else is a DecodeError.
    """
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Response body is not JSON: {e}") from e
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise DecodeError("Response body is not a list of records")
    return data


class PaginationDriver:
    """
    Fetch, guard, checkpoint and decode one page at a time.

    The loop keeps going while the last queried page is below the declared
    last page, or while the last page is still unknown (0), so at least one
    page is always requested.
    """

    def __init__(self, fetcher, guard, checkpointer=None,
                 retry_policy: RetryPolicy = None, stop_event: threading.Event = None):
        self.fetcher = fetcher
        self.guard = guard
        self.checkpointer = checkpointer
        self.retry_policy = retry_policy or RetryPolicy()
        self._stop = stop_event or threading.Event()

    def cancel(self):
        """Stop before the next fetch; pages already handed on are kept."""
        self._stop.set()

    def run(self, request_for_page: Callable[[int], PageRequest],
            on_records: Callable[[list], None], start_page: int = 1) -> RunResult:
        result = RunResult()
        page_number = start_page
        last_queried_page = 0
        total_pages = 0

        while last_queried_page < total_pages or total_pages == 0:
            if self._stop.is_set():
                logger.warning("Stop requested; not fetching page %s", page_number)
                result.cancelled = True
                break

            logger.info("Collecting page %s", page_number)
            try:
                response = self._fetch_with_retry(request_for_page(page_number))
            except KeyboardInterrupt:
                logger.warning("Interrupted while fetching page %s; stopping", page_number)
                result.cancelled = True
                break
            except TransportError as e:
                if not (self.retry_policy.skip_failed_pages and total_pages and e.retryable):
                    raise
                logger.error("Skipping page %s: %s", page_number, e)
                result.skipped_pages.append(page_number)
                last_queried_page = page_number
                page_number += 1
                continue

            self.guard.check(response.headers)
            if self.checkpointer is not None:
                self.checkpointer.save(response)
            records = decode_records(response.body)
            on_records(records)

            result.pages_fetched += 1
            result.records += len(records)
            last_queried_page = response.page_number
            total_pages = response.last_page
            result.last_page = total_pages
            page_number += 1
            logger.info("Last queried page: %s, total pages: %s",
                        last_queried_page, total_pages)

        return result

    def _fetch_with_retry(self, request: PageRequest):
        attempts = self.retry_policy.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return self.fetcher.fetch(request)
            except TransportError as e:
                if not e.retryable or attempt == attempts:
                    raise
                logger.warning("Page %s failed (%s); retry %s of %s",
                               request.page_number, e, attempt, attempts - 1)
                if self.retry_policy.backoff:
                    time.sleep(self.retry_policy.backoff * attempt)
