"""Public mirror service: one incremental sync or reconciliation per call."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from dropsync.adapters.notion.client import NotionLedger
from dropsync.adapters.raindrop.client import RaindropClient
from dropsync.config import AppConfig, require_sync_settings
from dropsync.core.logging_utils import generate_correlation_id
from dropsync.core.time_utils import utc_now
from dropsync.sync.cache import CollectionTitleCache
from dropsync.sync.changeset import ChangeSetBuilder
from dropsync.sync.models import (
    IncrementalSyncResult,
    ReconcileResult,
    ReconcileTotals,
    WindowSummary,
)
from dropsync.sync.reconcile import ReconciliationEngine
from dropsync.sync.upsert import UpsertDecisionEngine
from dropsync.sync.window import compute_sync_window

if TYPE_CHECKING:
    from datetime import datetime

    from dropsync.sync.protocols import DestinationFactory, SourceFactory

logger = logging.getLogger(__name__)

RaindropFactory = Callable[[AppConfig], RaindropClient]
NotionFactory = Callable[[AppConfig], NotionLedger]


def raindrop_client_from_config(cfg: AppConfig) -> RaindropClient:
    return RaindropClient(
        access_token=cfg.raindrop.access_token,
        api_url=cfg.raindrop.api_url,
        timeout=cfg.raindrop.timeout_sec,
    )


def notion_ledger_from_config(cfg: AppConfig) -> NotionLedger:
    return NotionLedger(
        api_token=cfg.notion.api_token,
        database_id=cfg.notion.database_id,
        api_url=cfg.notion.api_url,
        timeout=cfg.notion.timeout_sec,
        notion_version=cfg.notion.notion_version,
        lookup_chunk_size=cfg.notion.lookup_chunk_size,
        archive_pending_status=cfg.notion.archive_pending_status,
    )


class MirrorSyncService:
    """Thin orchestrator composing the window, change set, upsert and reconcile pieces.

    Each call opens fresh clients and a fresh collection-title cache; nothing
    carries over between calls except what is stored in Notion. Calls of the
    same kind are serialized within the process.
    """

    def __init__(
        self,
        cfg: AppConfig,
        *,
        source_factory: SourceFactory | None = None,
        destination_factory: DestinationFactory | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.cfg = cfg
        self._source_factory = source_factory or raindrop_client_from_config
        self._destination_factory = destination_factory or notion_ledger_from_config
        self._clock = clock
        self._sync_lock = asyncio.Lock()
        self._reconcile_lock = asyncio.Lock()

    async def run_incremental_sync(
        self,
        *,
        dry_run: bool = False,
        limit: int | None = None,
        correlation_id: str | None = None,
    ) -> IncrementalSyncResult:
        """Mirror recently created or changed Raindrop items into Notion.

        Args:
            dry_run: Classify candidates without writing to Notion
            limit: Optional hard cap on candidates, meant for manual testing
            correlation_id: Trace id for the run; generated when omitted

        Raises:
            ConfigurationError: A required setting is missing (before any I/O)
            UpstreamError: A listing, lookup or write failed; the run aborts
        """
        require_sync_settings(self.cfg)
        correlation_id = correlation_id or generate_correlation_id()

        if self._sync_lock.locked():
            logger.info("incremental_sync_waiting", extra={"correlation_id": correlation_id})

        async with self._sync_lock:
            start_time = time.time()
            window_cfg = self.cfg.window
            collection_id = self.cfg.raindrop.collection_id
            window = compute_sync_window(
                self._clock(), window_cfg.lookback_hours, window_cfg.overlap_minutes
            )
            logger.info(
                "incremental_sync_start",
                extra={
                    "correlation_id": correlation_id,
                    "dry_run": dry_run,
                    "limit": limit,
                    "since": window.since.isoformat(),
                },
            )

            async with (
                self._source_factory(self.cfg) as source,
                self._destination_factory(self.cfg) as destination,
            ):
                titles = CollectionTitleCache(source, correlation_id=correlation_id)
                default_title = await titles.get(collection_id)

                builder = ChangeSetBuilder(
                    source,
                    destination,
                    collection_id=collection_id,
                    per_page=window_cfg.per_page,
                    max_pages=window_cfg.max_pages,
                    consecutive_hits_stop=window_cfg.consecutive_hits_stop,
                    correlation_id=correlation_id,
                )
                change_set = await builder.build(window, limit=limit)

                engine = UpsertDecisionEngine(
                    destination,
                    titles,
                    collection_id=collection_id,
                    default_collection_title=default_title,
                    write_delay=self.cfg.notion.write_delay_seconds,
                    correlation_id=correlation_id,
                )
                outcome = await engine.apply(change_set.candidates, dry_run=dry_run)

            result = IncrementalSyncResult(
                dry_run=dry_run,
                window=WindowSummary(
                    lookback_hours=window_cfg.lookback_hours,
                    overlap_minutes=window_cfg.overlap_minutes,
                    since=window.since,
                ),
                pass_a=change_set.pass_a,
                pass_b=change_set.pass_b,
                union_candidates=len(change_set.candidates),
                **outcome.model_dump(),
                duration_seconds=round(time.time() - start_time, 3),
            )

        logger.info(
            "incremental_sync_complete",
            extra={
                "correlation_id": correlation_id,
                "dry_run": dry_run,
                "union_candidates": result.union_candidates,
                "created": result.created,
                "updated": result.updated,
                "stop_reason": result.pass_a.stop_reason,
                "duration_seconds": result.duration_seconds,
            },
        )
        return result

    async def run_reconcile(
        self, *, dry_run: bool = False, correlation_id: str | None = None
    ) -> ReconcileResult:
        """Compare the whole collection with every Notion row.

        Raises:
            ConfigurationError: A required setting is missing (before any I/O)
            UpstreamError: Enumeration or a write failed; the run aborts
        """
        require_sync_settings(self.cfg)
        correlation_id = correlation_id or generate_correlation_id()

        if self._reconcile_lock.locked():
            logger.info("reconcile_waiting", extra={"correlation_id": correlation_id})

        async with self._reconcile_lock:
            start_time = time.time()
            reconcile_cfg = self.cfg.reconcile
            collection_id = self.cfg.raindrop.collection_id
            logger.info(
                "reconcile_start",
                extra={
                    "correlation_id": correlation_id,
                    "dry_run": dry_run,
                    "delete_mode": reconcile_cfg.delete_mode.value,
                    "grace_hours": reconcile_cfg.delete_grace_hours,
                },
            )

            async with (
                self._source_factory(self.cfg) as source,
                self._destination_factory(self.cfg) as destination,
            ):
                engine = ReconciliationEngine(
                    source,
                    destination,
                    CollectionTitleCache(source, correlation_id=correlation_id),
                    collection_id=collection_id,
                    per_page=self.cfg.window.per_page,
                    max_pages=reconcile_cfg.max_pages,
                    delete_mode=reconcile_cfg.delete_mode,
                    grace_hours=reconcile_cfg.delete_grace_hours,
                    detail_error_policy=reconcile_cfg.detail_error_policy,
                    write_delay=self.cfg.notion.write_delay_seconds,
                    clock=self._clock,
                    correlation_id=correlation_id,
                )
                raindrop_ids, pages_fetched = await engine.enumerate_source_ids()
                rows = await destination.list_all()
                outcome = await engine.reconcile_rows(rows, raindrop_ids, dry_run=dry_run)

            result = ReconcileResult(
                dry_run=dry_run,
                delete_mode=reconcile_cfg.delete_mode,
                grace_hours=reconcile_cfg.delete_grace_hours,
                collection_id=str(collection_id),
                pages_fetched=pages_fetched,
                enumeration_complete=engine.enumeration_complete,
                totals=ReconcileTotals(notion_rows=len(rows), raindrop_ids=len(raindrop_ids)),
                **outcome.model_dump(),
                duration_seconds=round(time.time() - start_time, 3),
            )

        logger.info(
            "reconcile_complete",
            extra={
                "correlation_id": correlation_id,
                "dry_run": dry_run,
                "enumeration_complete": result.enumeration_complete,
                "moved": len(result.moved),
                "delete_detected": len(result.delete_detected),
                "delete_archived_now": len(result.delete_archived_now),
                "cleared_flags": len(result.cleared_flags),
                "duration_seconds": result.duration_seconds,
            },
        )
        return result
