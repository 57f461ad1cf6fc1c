"""Tests for the incremental sync time window."""

from __future__ import annotations

import unittest
from datetime import UTC, date, datetime, timedelta, timezone

from dropsync.sync.window import compute_sync_window


class TestComputeSyncWindow(unittest.TestCase):
    def test_since_subtracts_lookback_and_overlap(self):
        now = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)
        window = compute_sync_window(now, lookback_hours=48, overlap_minutes=15)
        assert window.since == datetime(2025, 6, 13, 11, 45, tzinfo=UTC)
        assert window.since_date_only == date(2025, 6, 13)
        assert window.search_date == "2025-06-13"

    def test_zero_overlap(self):
        now = datetime(2025, 6, 15, 0, 30, tzinfo=UTC)
        window = compute_sync_window(now, lookback_hours=1, overlap_minutes=0)
        assert window.since == datetime(2025, 6, 14, 23, 30, tzinfo=UTC)
        assert window.since_date_only == date(2025, 6, 14)

    def test_naive_now_is_treated_as_utc(self):
        window = compute_sync_window(datetime(2025, 6, 15, 12, 0), 1, 0)
        assert window.since.tzinfo is not None
        assert window.since == datetime(2025, 6, 15, 11, 0, tzinfo=UTC)

    def test_offset_now_is_normalized_to_utc(self):
        plus_three = timezone(timedelta(hours=3))
        window = compute_sync_window(datetime(2025, 6, 15, 2, 0, tzinfo=plus_three), 1, 0)
        assert window.since == datetime(2025, 6, 14, 22, 0, tzinfo=UTC)
        assert window.since_date_only == date(2025, 6, 14)

    def test_contains_is_inclusive_at_the_edge(self):
        now = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)
        window = compute_sync_window(now, 48, 60)
        assert window.contains(window.since)
        assert window.contains(now - timedelta(hours=10))
        assert not window.contains(window.since - timedelta(seconds=1))
