"""Nightly full reconciliation between the Raindrop collection and Notion."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from dropsync.adapters.raindrop.models import RaindropDetail
from dropsync.config.sync import DeleteMode, DetailErrorPolicy
from dropsync.core.time_utils import utc_now
from dropsync.sync.constants import SORT_NEWEST_FIRST
from dropsync.sync.deletion import (
    DeleteAction,
    delete_state_of,
    has_delete_marker,
    next_delete_transition,
)
from dropsync.sync.errors import UpstreamError
from dropsync.sync.models import ReconcileOutcome

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from dropsync.adapters.notion.models import LedgerRow
    from dropsync.sync.cache import CollectionTitleCache
    from dropsync.sync.protocols import DestinationLedger, SourceReader

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Compares every Notion row against the full Raindrop collection.

    Rows whose item left the collection are checked individually to tell a
    move from a removal; removals go through the grace-period delete state
    machine in :mod:`dropsync.sync.deletion`.
    """

    def __init__(
        self,
        source: SourceReader,
        destination: DestinationLedger,
        titles: CollectionTitleCache,
        *,
        collection_id: str | int,
        per_page: int = 50,
        max_pages: int = 200,
        delete_mode: DeleteMode = DeleteMode.ARCHIVE,
        grace_hours: float = 24,
        detail_error_policy: DetailErrorPolicy = DetailErrorPolicy.TREAT_AS_MISSING,
        write_delay: float = 0.15,
        clock: Callable[[], datetime] = utc_now,
        correlation_id: str | None = None,
    ) -> None:
        self._source = source
        self._destination = destination
        self._titles = titles
        self.collection_id = collection_id
        self.per_page = per_page
        self.max_pages = max_pages
        self.delete_mode = delete_mode
        self.grace_hours = grace_hours
        self.detail_error_policy = detail_error_policy
        self.write_delay = write_delay
        self._clock = clock
        self._correlation_id = correlation_id
        self.enumeration_complete = True

    async def _write(self, dry_run: bool, call: Callable[[], Awaitable[None]]) -> None:
        if dry_run:
            return
        await call()
        if self.write_delay > 0:
            await asyncio.sleep(self.write_delay)

    async def enumerate_source_ids(self) -> tuple[set[int], int]:
        """All Raindrop IDs in the collection and the number of pages read."""
        raindrop_ids: set[int] = set()
        pages_fetched = 0
        self.enumeration_complete = True
        for page in range(self.max_pages):
            items = await self._source.list_recent(
                self.collection_id, per_page=self.per_page, page=page, sort=SORT_NEWEST_FIRST
            )
            pages_fetched += 1
            if not items:
                break
            raindrop_ids.update(item.id for item in items)
            if len(items) < self.per_page:
                break
        else:
            self.enumeration_complete = False
            logger.warning(
                "reconcile_page_budget_exhausted",
                extra={
                    "correlation_id": self._correlation_id,
                    "max_pages": self.max_pages,
                    "raindrop_ids": len(raindrop_ids),
                },
            )
        return raindrop_ids, pages_fetched

    async def _check_detail(
        self, row: LedgerRow, outcome: ReconcileOutcome
    ) -> RaindropDetail | None:
        """Detail lookup; ``None`` means leave the row alone this run."""
        try:
            return await self._source.get_detail(row.raindrop_id)
        except UpstreamError as exc:
            outcome.detail_errors.append(row.raindrop_id)
            logger.warning(
                "reconcile_detail_check_failed",
                extra={
                    "correlation_id": self._correlation_id,
                    "raindrop_id": row.raindrop_id,
                    "status_code": exc.status_code,
                    "policy": self.detail_error_policy.value,
                    "error": str(exc),
                },
            )
            if self.detail_error_policy is DetailErrorPolicy.SKIP:
                return None
            return RaindropDetail.missing()

    def _in_collection(self, detail: RaindropDetail) -> bool:
        return detail.collection_id is not None and str(detail.collection_id) == str(
            self.collection_id
        )

    async def _handle_present(
        self, row: LedgerRow, outcome: ReconcileOutcome, *, dry_run: bool
    ) -> None:
        if not has_delete_marker(row):
            return
        if row.locked:
            outcome.skipped_locked.append(row.raindrop_id)
            return
        await self._write(dry_run, lambda: self._destination.clear_delete_flags(row.page_id))
        outcome.cleared_flags.append(row.raindrop_id)

    async def _handle_moved(
        self,
        row: LedgerRow,
        detail: RaindropDetail,
        outcome: ReconcileOutcome,
        *,
        dry_run: bool,
    ) -> None:
        if row.locked:
            outcome.skipped_locked.append(row.raindrop_id)
            return
        new_title = await self._titles.get(detail.collection_id)
        await self._write(
            dry_run, lambda: self._destination.update_collection_only(row.page_id, new_title)
        )
        outcome.moved.append(row.raindrop_id)
        if has_delete_marker(row):
            await self._write(dry_run, lambda: self._destination.clear_delete_flags(row.page_id))
            outcome.cleared_flags.append(row.raindrop_id)

    async def _handle_missing(
        self,
        row: LedgerRow,
        outcome: ReconcileOutcome,
        *,
        now: datetime,
        dry_run: bool,
    ) -> None:
        transition = next_delete_transition(
            delete_state_of(row),
            now=now,
            grace_hours=self.grace_hours,
            delete_mode=self.delete_mode,
            locked=row.locked,
        )
        match transition.action:
            case DeleteAction.MARK_DETECTED:
                await self._write(
                    dry_run,
                    lambda: self._destination.mark_delete_detected(
                        row.page_id, now, set_archive_pending=True
                    ),
                )
                outcome.delete_detected.append(row.raindrop_id)
            case DeleteAction.WAIT:
                outcome.still_in_grace.append(row.raindrop_id)
            case DeleteAction.ARCHIVE:
                await self._write(dry_run, lambda: self._destination.archive(row.page_id))
                outcome.delete_archived_now.append(row.raindrop_id)
            case DeleteAction.HOLD:
                outcome.skipped_locked.append(row.raindrop_id)
            case DeleteAction.NONE:
                pass

    async def reconcile_rows(
        self,
        rows: list[LedgerRow],
        raindrop_ids: set[int],
        *,
        dry_run: bool = False,
    ) -> ReconcileOutcome:
        outcome = ReconcileOutcome()
        now = self._clock()

        for row in rows:
            if row.raindrop_id in raindrop_ids:
                await self._handle_present(row, outcome, dry_run=dry_run)
                continue

            detail = await self._check_detail(row, outcome)
            if detail is None:
                continue
            if detail.is_live and self._in_collection(detail):
                # Still here, only past the enumeration page budget
                await self._handle_present(row, outcome, dry_run=dry_run)
            elif detail.is_live:
                await self._handle_moved(row, detail, outcome, dry_run=dry_run)
            else:
                await self._handle_missing(row, outcome, now=now, dry_run=dry_run)

        logger.info(
            "reconcile_rows_done",
            extra={
                "correlation_id": self._correlation_id,
                "dry_run": dry_run,
                "rows": len(rows),
                "moved": len(outcome.moved),
                "delete_detected": len(outcome.delete_detected),
                "still_in_grace": len(outcome.still_in_grace),
                "delete_archived_now": len(outcome.delete_archived_now),
                "cleared_flags": len(outcome.cleared_flags),
                "skipped_locked": len(outcome.skipped_locked),
                "detail_errors": len(outcome.detail_errors),
            },
        )
        return outcome
