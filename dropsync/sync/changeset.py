"""Candidate discovery for the incremental sync (recency scan + change scan)."""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import TYPE_CHECKING

from dropsync.sync.constants import (
    SEARCH_CREATED_AFTER,
    SEARCH_LAST_UPDATE_AFTER,
    SORT_NEWEST_FIRST,
    STOP_COMPLETED,
    STOP_DEBUG_LIMIT,
    STOP_NO_MORE_ITEMS,
    STOP_SHORT_FINAL_PAGE,
    STOP_WINDOW_AND_CONSECUTIVE,
)
from dropsync.sync.models import ChangeSet, PassAStats, PassBStats

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from dropsync.adapters.raindrop.models import RaindropItem
    from dropsync.sync.protocols import DestinationLedger, SourceReader
    from dropsync.sync.window import SyncWindow

    PageFetcher = Callable[[int, int], Awaitable[list[RaindropItem]]]

logger = logging.getLogger(__name__)


async def iter_pages(
    fetch: PageFetcher,
    *,
    page_size: int,
    max_pages: int,
) -> AsyncIterator[list[RaindropItem]]:
    """Yield pages until an empty or short page, or ``max_pages`` pages.

    The terminating empty or short page is still yielded so the consumer can
    tell why the scan ended.
    """
    for page in range(max_pages):
        items = await fetch(page, page_size)
        yield items
        if len(items) < page_size:
            return


class ChangeSetBuilder:
    """Collects the items an incremental run has to consider.

    Pass A walks the collection newest first and stops once it is past the
    window edge with a long enough run of already-mirrored items. Pass B asks
    Raindrop directly for items updated or created since the window date.
    """

    def __init__(
        self,
        source: SourceReader,
        destination: DestinationLedger,
        *,
        collection_id: str | int,
        per_page: int = 50,
        max_pages: int = 10,
        consecutive_hits_stop: int = 50,
        correlation_id: str | None = None,
    ) -> None:
        self._source = source
        self._destination = destination
        self.collection_id = collection_id
        self.per_page = per_page
        self.max_pages = max_pages
        self.consecutive_hits_stop = consecutive_hits_stop
        self._correlation_id = correlation_id

    def _recent_fetcher(self) -> PageFetcher:
        async def _fetch(page: int, page_size: int) -> list[RaindropItem]:
            return await self._source.list_recent(
                self.collection_id, per_page=page_size, page=page, sort=SORT_NEWEST_FIRST
            )

        return _fetch

    def _search_fetcher(self, query: str) -> PageFetcher:
        async def _fetch(page: int, page_size: int) -> list[RaindropItem]:
            return await self._source.search(
                self.collection_id, query, per_page=page_size, page=page, sort=SORT_NEWEST_FIRST
            )

        return _fetch

    async def scan_recent(
        self, window: SyncWindow, *, limit: int | None = None
    ) -> tuple[dict[int, RaindropItem], PassAStats]:
        """Pass A: newest-first listing with the stop rules."""
        page_size = limit if limit is not None and limit < self.per_page else self.per_page
        accepted: dict[int, RaindropItem] = {}
        stats = PassAStats()
        consecutive_existing = 0

        pages = iter_pages(self._recent_fetcher(), page_size=page_size, max_pages=self.max_pages)
        async with aclosing(pages):
            async for items in pages:
                stats.pages_fetched += 1
                if not items:
                    stats.stop_reason = STOP_NO_MORE_ITEMS
                    break

                existing = await self._destination.find_by_raindrop_ids([i.id for i in items])
                for item in items:
                    consecutive_existing = consecutive_existing + 1 if item.id in existing else 0
                    created_old = not window.contains(item.created)
                    if not created_old:
                        accepted[item.id] = item
                    if created_old and consecutive_existing >= self.consecutive_hits_stop:
                        stats.stop_reason = STOP_WINDOW_AND_CONSECUTIVE
                        break
                if stats.stop_reason:
                    break

                if len(items) < page_size:
                    stats.stop_reason = STOP_SHORT_FINAL_PAGE
                    break
                if limit is not None and limit <= self.per_page:
                    stats.stop_reason = STOP_DEBUG_LIMIT
                    break

        if stats.stop_reason is None:
            stats.stop_reason = STOP_COMPLETED
        stats.candidates = len(accepted)
        logger.info(
            "changeset_pass_a_done",
            extra={
                "correlation_id": self._correlation_id,
                "pages_fetched": stats.pages_fetched,
                "stop_reason": stats.stop_reason,
                "candidates": stats.candidates,
            },
        )
        return accepted, stats

    async def scan_changed(self, window: SyncWindow) -> tuple[dict[int, RaindropItem], PassBStats]:
        """Pass B: items updated or created after the window's date."""
        found: dict[int, RaindropItem] = {}
        stats = PassBStats()
        for template in (SEARCH_LAST_UPDATE_AFTER, SEARCH_CREATED_AFTER):
            query = template.format(date=window.search_date)
            pages = iter_pages(
                self._search_fetcher(query), page_size=self.per_page, max_pages=self.max_pages
            )
            async with aclosing(pages):
                async for items in pages:
                    stats.pages_fetched += 1
                    for item in items:
                        found[item.id] = item

        stats.candidates = len(found)
        logger.info(
            "changeset_pass_b_done",
            extra={
                "correlation_id": self._correlation_id,
                "pages_fetched": stats.pages_fetched,
                "candidates": stats.candidates,
            },
        )
        return found, stats

    async def build(self, window: SyncWindow, *, limit: int | None = None) -> ChangeSet:
        """Union both passes by Raindrop ID; ``limit`` truncates the union."""
        recent, pass_a = await self.scan_recent(window, limit=limit)
        changed, pass_b = await self.scan_changed(window)

        merged: dict[int, RaindropItem] = {**recent, **changed}
        candidates = list(merged.values())
        if limit is not None:
            candidates = candidates[:limit]
        return ChangeSet(candidates=candidates, pass_a=pass_a, pass_b=pass_b)
