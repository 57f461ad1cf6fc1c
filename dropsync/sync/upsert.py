"""Create/update decisions for incremental sync candidates."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from dropsync.core.time_utils import newer_than
from dropsync.sync.models import UpsertOutcome

if TYPE_CHECKING:
    from dropsync.adapters.raindrop.models import RaindropItem
    from dropsync.sync.cache import CollectionTitleCache
    from dropsync.sync.protocols import DestinationLedger

logger = logging.getLogger(__name__)


class UpsertDecisionEngine:
    """Decides create / skip-locked / update / skip for each candidate.

    Dry runs walk the same decision path and record previews instead of
    writing. Every real write is followed by ``write_delay`` seconds of sleep
    to stay under Notion's rate limit.
    """

    def __init__(
        self,
        destination: DestinationLedger,
        titles: CollectionTitleCache,
        *,
        collection_id: str | int,
        default_collection_title: str | None = None,
        write_delay: float = 0.15,
        correlation_id: str | None = None,
    ) -> None:
        self._destination = destination
        self._titles = titles
        self.collection_id = collection_id
        self.default_collection_title = default_collection_title
        self.write_delay = write_delay
        self._correlation_id = correlation_id

    async def _pace(self) -> None:
        if self.write_delay > 0:
            await asyncio.sleep(self.write_delay)

    async def _collection_title(self, item: RaindropItem) -> str | None:
        # Items can move between runs, so resolve per item
        collection_id = item.collection_ref_id
        if collection_id is None:
            collection_id = self.collection_id
        return await self._titles.resolve(
            collection_id, default_title=self.default_collection_title
        )

    async def apply(
        self, candidates: list[RaindropItem], *, dry_run: bool = False
    ) -> UpsertOutcome:
        outcome = UpsertOutcome()
        if not candidates:
            return outcome

        existing = await self._destination.find_by_raindrop_ids([c.id for c in candidates])

        for item in candidates:
            found = existing.get(item.id)
            collection_title = await self._collection_title(item)

            if found is None:
                if dry_run:
                    outcome.to_create_preview.append(item.id)
                else:
                    await self._destination.create(item, collection_title)
                    outcome.created += 1
                    outcome.created_ids.append(item.id)
                    await self._pace()
                continue

            if found.locked:
                outcome.skipped_locked.append(item.id)
                outcome.already_exists.append(item.id)
                continue

            if newer_than(item.last_modified, found.raindrop_last_update):
                if dry_run:
                    outcome.to_update_preview.append(item.id)
                else:
                    await self._destination.update(found.page_id, item, collection_title)
                    outcome.updated += 1
                    outcome.updated_ids.append(item.id)
                    await self._pace()
            else:
                outcome.already_exists.append(item.id)

        logger.info(
            "upsert_applied",
            extra={
                "correlation_id": self._correlation_id,
                "dry_run": dry_run,
                "candidates": len(candidates),
                "created": outcome.created,
                "updated": outcome.updated,
                "to_create": len(outcome.to_create_preview),
                "to_update": len(outcome.to_update_preview),
                "skipped_locked": len(outcome.skipped_locked),
                "already_exists": len(outcome.already_exists),
            },
        )
        return outcome
