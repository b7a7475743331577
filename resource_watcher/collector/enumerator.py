"""Paginated, loop-safe resource enumeration for a single region.

The upstream listing API is not always well behaved: it can repeat pages,
hand back empty pages while still advancing the continuation token, or keep
issuing tokens indefinitely. ResourceEnumerator walks the pages with a
per-call membership set and stops early, successfully, when any of the
following holds:

* more than ``max_page_requests`` pages have been requested;
* ``max_empty_pages`` consecutive pages produced no new identifier;
* a non-empty page produced no new identifier (every item already seen).

A page whose duplicate ratio exceeds 80% is logged as a probable pagination
anomaly but does not stop the walk.

The whole walk is bounded by ``timeout_seconds``. A timeout or any API error
discards what was collected so far: a truncated listing must never be
reported as complete.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from resource_watcher.models.resources import ResourcePage, ResourceSet
from resource_watcher.observability.logging import get_logger
from resource_watcher.observability.metrics import pages_requested_total

_logger = get_logger("collector.enumerator")

_HIGH_DUPLICATE_RATIO = 0.8
_MAX_PAGE_SIZE = 100


class ListingClient(Protocol):
    """Remote API that lists resource identifiers page by page."""

    async def list_page(self, partition: str, token: str | None, page_size: int) -> ResourcePage: ...

    async def list_partitions(self) -> list[str]: ...


class EnumerationError(Exception):
    """Raised when a partition cannot be enumerated completely."""

    def __init__(self, partition: str, cause: BaseException | str) -> None:
        super().__init__(f"failed to enumerate resources in {partition}: {cause}")
        self.partition = partition
        self.cause = cause


class PartitionTimeoutError(EnumerationError):
    """Raised when a partition exceeds its enumeration deadline."""


class ResourceEnumerator:
    """Collects the deduplicated identifier set of one partition.

    Args:
        client:            Listing API collaborator.
        max_page_requests: Hard ceiling on page requests per partition.
        max_empty_pages:   Consecutive pages without a new identifier that
                           end the walk.
        page_size:         Items requested per page (1-100).
        timeout_seconds:   Deadline for the whole partition.
    """

    def __init__(
        self,
        client: ListingClient,
        max_page_requests: int = 50,
        max_empty_pages: int = 1,
        page_size: int = _MAX_PAGE_SIZE,
        timeout_seconds: float = 60.0,
    ) -> None:
        if max_page_requests < 1:
            raise ValueError("max_page_requests must be at least 1")
        if max_empty_pages < 1:
            raise ValueError("max_empty_pages must be at least 1")
        self._client = client
        self._max_page_requests = max_page_requests
        self._max_empty_pages = max_empty_pages
        self._page_size = max(1, min(page_size, _MAX_PAGE_SIZE))
        self._timeout = timeout_seconds

    async def enumerate(self, partition: str) -> ResourceSet:
        """Return every identifier listed for *partition*.

        Raises:
            PartitionTimeoutError: the partition deadline expired.
            EnumerationError: the listing API failed.
        """
        try:
            return await asyncio.wait_for(self._walk(partition), timeout=self._timeout)
        except TimeoutError as exc:
            _logger.warning("partition_timeout", partition=partition, timeout=self._timeout)
            raise PartitionTimeoutError(partition, f"timed out after {self._timeout:g}s") from exc

    async def _walk(self, partition: str) -> ResourceSet:
        seen: set[str] = set()
        token: str | None = None
        request_count = 0
        stale_pages = 0
        duplicate_count = 0

        while True:
            request_count += 1
            if request_count > self._max_page_requests:
                _logger.warning(
                    "page_request_limit_reached",
                    partition=partition,
                    max_requests=self._max_page_requests,
                )
                break

            _logger.debug("requesting_page", partition=partition, request=request_count)
            pages_requested_total.inc()
            try:
                page = await self._client.list_page(partition, token, self._page_size)
            except Exception as exc:
                _logger.warning(
                    "list_page_failed",
                    partition=partition,
                    request=request_count,
                    error=str(exc),
                )
                raise EnumerationError(partition, exc) from exc

            item_count = len(page.items)
            new_in_page = 0
            for identifier in page.items:
                if identifier in seen:
                    duplicate_count += 1
                else:
                    seen.add(identifier)
                    new_in_page += 1
            duplicates_in_page = item_count - new_in_page

            _logger.debug(
                "page_received",
                partition=partition,
                request=request_count,
                items=item_count,
                new=new_in_page,
                duplicates=duplicates_in_page,
            )

            if item_count and duplicates_in_page / item_count > _HIGH_DUPLICATE_RATIO:
                _logger.warning(
                    "high_duplicate_ratio",
                    partition=partition,
                    request=request_count,
                    ratio=round(duplicates_in_page / item_count, 3),
                )

            if new_in_page == 0:
                stale_pages += 1
                if item_count > 0:
                    _logger.warning("duplicate_page_received", partition=partition, request=request_count)
                    break
                if stale_pages >= self._max_empty_pages:
                    _logger.warning(
                        "consecutive_empty_pages",
                        partition=partition,
                        request=request_count,
                        empty_pages=stale_pages,
                    )
                    break
            else:
                stale_pages = 0

            token = page.next_token or None
            if token is None:
                break

        _logger.info(
            "partition_enumerated",
            partition=partition,
            resources=len(seen),
            duplicates=duplicate_count,
            requests=min(request_count, self._max_page_requests),
        )
        return frozenset(seen)
