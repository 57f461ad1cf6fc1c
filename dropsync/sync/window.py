"""Time window for the incremental sync."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from dropsync.core.time_utils import ensure_utc


@dataclass(frozen=True)
class SyncWindow:
    since: datetime
    since_date_only: date

    @property
    def search_date(self) -> str:
        """``YYYY-MM-DD`` form accepted by Raindrop search operators."""
        return self.since_date_only.isoformat()

    def contains(self, moment: datetime) -> bool:
        return ensure_utc(moment) >= self.since


def compute_sync_window(now: datetime, lookback_hours: int, overlap_minutes: int) -> SyncWindow:
    """Return the window start ``now - (lookback + overlap)``.

    The date-only truncation is coarser than ``since`` and only feeds the
    search queries, which accept day granularity.
    """
    since = ensure_utc(now) - timedelta(minutes=lookback_hours * 60 + overlap_minutes)
    return SyncWindow(since=since, since_date_only=since.date())
