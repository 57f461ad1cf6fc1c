"""Tests for nightly reconciliation: moves, removals and the grace period."""

from __future__ import annotations

import unittest
from datetime import timedelta

import httpx
from mirror_fakes import NOW, FakeLedger, FakeSource, make_item

from dropsync.adapters.raindrop.client import RaindropClient
from dropsync.adapters.raindrop.models import RaindropDetail
from dropsync.config import DeleteMode, DetailErrorPolicy
from dropsync.sync.cache import CollectionTitleCache
from dropsync.sync.reconcile import ReconciliationEngine


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def _engine(source, ledger, clock=None, **kwargs) -> ReconciliationEngine:
    params = {"per_page": 5, "max_pages": 20, "write_delay": 0}
    params.update(kwargs)
    return ReconciliationEngine(
        source,
        ledger,
        CollectionTitleCache(source),
        collection_id="123",
        clock=clock or (lambda: NOW),
        **params,
    )


async def _reconcile(engine, ledger, *, dry_run=False):
    raindrop_ids, _ = await engine.enumerate_source_ids()
    rows = await ledger.list_all()
    return await engine.reconcile_rows(rows, raindrop_ids, dry_run=dry_run)


def _mirrored(ids):
    """A source and a ledger that both contain ``ids``."""
    source = FakeSource([make_item(i, NOW - timedelta(days=i)) for i in ids])
    ledger = FakeLedger()
    for i in ids:
        ledger.add_row(i)
    return source, ledger


class TestEnumerateSourceIds(unittest.IsolatedAsyncioTestCase):
    async def test_reads_every_page(self):
        source, ledger = _mirrored(range(1, 13))
        raindrop_ids, pages = await _engine(source, ledger).enumerate_source_ids()
        assert raindrop_ids == set(range(1, 13))
        assert pages == 3

    async def test_stops_at_page_budget(self):
        source, ledger = _mirrored(range(1, 13))
        raindrop_ids, pages = await _engine(source, ledger, max_pages=2).enumerate_source_ids()
        assert pages == 2
        assert len(raindrop_ids) == 10


class TestReconcileRows(unittest.IsolatedAsyncioTestCase):
    # ------------------------------------------------------------------
    # Present rows
    # ------------------------------------------------------------------

    async def test_present_unflagged_rows_are_untouched(self):
        source, ledger = _mirrored([1, 2, 3])
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert ledger.writes == []
        assert outcome.cleared_flags == []
        assert not any(c[0] == "get_detail" for c in source.calls)

    async def test_reappeared_item_gets_flags_cleared(self):
        source, ledger = _mirrored([1])
        row = ledger.rows["page-1"]
        row.deleted_flag = True
        row.delete_detected_at = NOW - timedelta(hours=5)
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert outcome.cleared_flags == [1]
        assert not row.deleted_flag
        assert row.delete_detected_at is None

    async def test_locked_flagged_row_is_not_cleared(self):
        source, ledger = _mirrored([1])
        row = ledger.rows["page-1"]
        row.locked = True
        row.deleted_flag = True
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert outcome.skipped_locked == [1]
        assert ledger.writes == []

    # ------------------------------------------------------------------
    # Moved vs removed
    # ------------------------------------------------------------------

    async def test_moved_item_updates_collection_only(self):
        source, ledger = _mirrored([1])
        source.remove(1)
        source.elsewhere[1] = RaindropDetail(exists=True, collection_id=77)
        source.titles["77"] = "Elsewhere"
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert outcome.moved == [1]
        assert outcome.delete_detected == []
        row = ledger.rows["page-1"]
        assert row.history == ["update_collection_only"]
        assert row.collection_title == "Elsewhere"
        assert not row.deleted_flag

    async def test_moved_flagged_item_is_also_cleared(self):
        source, ledger = _mirrored([1])
        source.remove(1)
        source.elsewhere[1] = RaindropDetail(exists=True, collection_id=77)
        ledger.rows["page-1"].deleted_flag = True
        ledger.rows["page-1"].delete_detected_at = NOW - timedelta(hours=2)
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert outcome.moved == [1]
        assert outcome.cleared_flags == [1]

    async def test_locked_moved_item_is_skipped(self):
        source, ledger = _mirrored([1])
        source.remove(1)
        source.elsewhere[1] = RaindropDetail(exists=True, collection_id=77)
        ledger.rows["page-1"].locked = True
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert outcome.moved == []
        assert outcome.skipped_locked == [1]
        assert ledger.writes == []

    async def test_trashed_item_counts_as_removed(self):
        source, ledger = _mirrored([1])
        source.remove(1)
        source.elsewhere[1] = RaindropDetail.from_item_payload({"_id": 1, "collectionId": -99})
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert outcome.delete_detected == [1]
        assert outcome.moved == []

    # ------------------------------------------------------------------
    # Grace period
    # ------------------------------------------------------------------

    async def test_removal_is_flagged_then_archived_after_grace(self):
        deleted_at = NOW
        clock = Clock(deleted_at + timedelta(hours=1))
        source, ledger = _mirrored([1, 2])
        source.remove(1)
        engine = _engine(source, ledger, clock)

        first = await _reconcile(engine, ledger)
        row = ledger.rows["page-1"]
        assert first.delete_detected == [1]
        assert row.deleted_flag
        assert row.delete_detected_at == deleted_at + timedelta(hours=1)
        assert row.status == "Archived"
        assert not row.archived

        clock.advance(hours=12)
        second = await _reconcile(engine, ledger)
        assert second.still_in_grace == [1]
        assert not row.archived

        clock.advance(hours=12)
        third = await _reconcile(engine, ledger)
        assert third.delete_archived_now == [1]
        assert row.archived
        assert row.history == ["mark_delete_detected", "archive"]

        fourth = await _reconcile(engine, ledger)
        assert fourth.delete_archived_now == []
        assert ledger.writes_to("page-2") == []

    async def test_item_back_within_grace_is_restored(self):
        clock = Clock(NOW + timedelta(hours=1))
        source, ledger = _mirrored([1])
        item = source.items[1]
        source.remove(1)
        engine = _engine(source, ledger, clock)

        await _reconcile(engine, ledger)
        assert ledger.rows["page-1"].deleted_flag

        clock.advance(hours=4)
        source.items[1] = item
        outcome = await _reconcile(engine, ledger)
        row = ledger.rows["page-1"]
        assert outcome.cleared_flags == [1]
        assert not row.deleted_flag
        assert row.delete_detected_at is None
        assert not row.archived

    async def test_locked_removed_row_is_never_flagged(self):
        source, ledger = _mirrored([1])
        source.remove(1)
        ledger.rows["page-1"].locked = True
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert outcome.skipped_locked == [1]
        assert outcome.delete_detected == []
        assert ledger.writes == []

    async def test_delete_mode_off_never_archives(self):
        source, ledger = _mirrored([1])
        source.remove(1)
        row = ledger.rows["page-1"]
        row.deleted_flag = True
        row.delete_detected_at = NOW - timedelta(days=10)
        engine = _engine(source, ledger, delete_mode=DeleteMode.OFF)
        outcome = await _reconcile(engine, ledger)
        assert outcome.delete_archived_now == []
        assert not row.archived

    async def test_flag_without_timestamp_is_restamped(self):
        source, ledger = _mirrored([1])
        source.remove(1)
        ledger.rows["page-1"].deleted_flag = True
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert outcome.delete_detected == [1]
        assert ledger.rows["page-1"].delete_detected_at == NOW

    # ------------------------------------------------------------------
    # Detail check failures
    # ------------------------------------------------------------------

    async def test_failed_detail_check_treated_as_missing_by_default(self):
        source, ledger = _mirrored([1])
        source.remove(1)
        source.failing_details.add(1)
        outcome = await _reconcile(_engine(source, ledger), ledger)
        assert outcome.detail_errors == [1]
        assert outcome.delete_detected == [1]

    async def test_failed_detail_check_can_be_skipped(self):
        source, ledger = _mirrored([1])
        source.remove(1)
        source.failing_details.add(1)
        engine = _engine(source, ledger, detail_error_policy=DetailErrorPolicy.SKIP)
        outcome = await _reconcile(engine, ledger)
        assert outcome.detail_errors == [1]
        assert outcome.delete_detected == []
        assert ledger.writes == []

    async def test_malformed_detail_body_follows_detail_error_policy(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/rest/v1/raindrops/123":
                return httpx.Response(200, json={"result": True, "items": []})
            return httpx.Response(200, text="<html>maintenance</html>")

        ledger = FakeLedger()
        ledger.add_row(4)
        client = RaindropClient(
            "rd-token", transport=httpx.MockTransport(handler), max_retries=0
        )
        async with client:
            outcome = await _reconcile(_engine(client, ledger), ledger)
        assert outcome.detail_errors == [4]
        assert outcome.delete_detected == [4]

    # ------------------------------------------------------------------
    # Page budget
    # ------------------------------------------------------------------

    async def test_rows_past_page_budget_are_not_reported_as_moved(self):
        source, ledger = _mirrored(range(1, 13))
        flagged = ledger.rows["page-12"]
        flagged.deleted_flag = True
        flagged.delete_detected_at = NOW - timedelta(hours=2)
        engine = _engine(source, ledger, max_pages=2)
        outcome = await _reconcile(engine, ledger)
        assert not engine.enumeration_complete
        assert outcome.moved == []
        assert outcome.cleared_flags == [12]
        assert [w[0] for w in ledger.writes] == ["clear_delete_flags"]

    # ------------------------------------------------------------------
    # Dry run
    # ------------------------------------------------------------------

    async def test_dry_run_reports_without_writing(self):
        def scenario():
            source, ledger = _mirrored([1, 2, 3, 4])
            source.remove(1)
            source.remove(2)
            source.remove(3)
            source.elsewhere[2] = RaindropDetail(exists=True, collection_id=77)
            stale = ledger.rows["page-3"]
            stale.deleted_flag = True
            stale.delete_detected_at = NOW - timedelta(hours=30)
            ledger.rows["page-4"].deleted_flag = True
            return source, ledger

        source, ledger = scenario()
        dry = await _reconcile(_engine(source, ledger), ledger, dry_run=True)
        assert ledger.writes == []

        source, ledger = scenario()
        real = await _reconcile(_engine(source, ledger), ledger)
        assert dry.delete_detected == real.delete_detected == [1]
        assert dry.moved == real.moved == [2]
        assert dry.delete_archived_now == real.delete_archived_now == [3]
        assert dry.cleared_flags == real.cleared_flags == [4]


if __name__ == "__main__":
    unittest.main()
