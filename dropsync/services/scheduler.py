"""Background scheduler for the periodic sync and the nightly reconciliation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from dropsync.core.time_utils import utc_now
from dropsync.sync.errors import DropsyncError

if TYPE_CHECKING:
    from dropsync.config import AppConfig
    from dropsync.sync.service import MirrorSyncService

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "incremental_sync"
RECONCILE_JOB_ID = "nightly_reconcile"


class SchedulerService:
    """Runs the incremental sync on an interval and reconciliation once a day."""

    def __init__(self, cfg: AppConfig, service: MirrorSyncService) -> None:
        """Initialize scheduler service.

        Args:
            cfg: Application configuration
            service: Mirror service whose runs are scheduled
        """
        self.cfg = cfg
        self.service = service
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    async def start(self) -> None:
        """Start the scheduler with both jobs."""
        if self._started:
            logger.warning("scheduler_already_started")
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        runtime = self.cfg.runtime

        self._scheduler.add_job(
            self._run_incremental_sync,
            trigger=IntervalTrigger(minutes=runtime.sync_interval_minutes),
            id=SYNC_JOB_ID,
            name="Raindrop to Notion incremental sync",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
            coalesce=True,
        )
        self._scheduler.add_job(
            self._run_reconcile,
            trigger=CronTrigger(hour=runtime.reconcile_hour_utc, minute=0, timezone="UTC"),
            id=RECONCILE_JOB_ID,
            name="Raindrop to Notion nightly reconciliation",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            "scheduler_jobs_added",
            extra={
                "sync_interval_minutes": runtime.sync_interval_minutes,
                "reconcile_hour_utc": runtime.reconcile_hour_utc,
            },
        )

        self._scheduler.start()
        self._started = True
        logger.info("scheduler_started")

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._started:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._started = False
            logger.info("scheduler_stopped")

    async def _run_incremental_sync(self) -> None:
        correlation_id = f"scheduled_sync_{utc_now().strftime('%Y%m%d_%H%M%S')}"
        try:
            result = await self.service.run_incremental_sync(correlation_id=correlation_id)
        except DropsyncError as exc:
            logger.exception(
                "scheduled_sync_failed",
                extra={"correlation_id": correlation_id, "error": str(exc)},
            )
            return
        logger.info(
            "scheduled_sync_complete",
            extra={
                "correlation_id": correlation_id,
                "created": result.created,
                "updated": result.updated,
                "duration_seconds": result.duration_seconds,
            },
        )

    async def _run_reconcile(self) -> None:
        correlation_id = f"scheduled_reconcile_{utc_now().strftime('%Y%m%d_%H%M%S')}"
        try:
            result = await self.service.run_reconcile(correlation_id=correlation_id)
        except DropsyncError as exc:
            logger.exception(
                "scheduled_reconcile_failed",
                extra={"correlation_id": correlation_id, "error": str(exc)},
            )
            return
        logger.info(
            "scheduled_reconcile_complete",
            extra={
                "correlation_id": correlation_id,
                "delete_detected": len(result.delete_detected),
                "delete_archived_now": len(result.delete_archived_now),
                "duration_seconds": result.duration_seconds,
            },
        )

    def get_next_run_time(self, job_id: str) -> datetime | None:
        """Get next scheduled run time for a job, or None if unknown or not started."""
        if not self._scheduler or not self._started:
            return None
        job = self._scheduler.get_job(job_id)
        return job.next_run_time if job else None

    @property
    def is_running(self) -> bool:
        return self._started and self._scheduler is not None
