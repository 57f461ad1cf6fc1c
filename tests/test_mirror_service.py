"""End-to-end tests for MirrorSyncService over in-memory ledgers."""

from __future__ import annotations

import asyncio
import unittest
from datetime import timedelta

from mirror_fakes import BASE_ENV, NOW, FakeLedger, FakeSource, config_from, make_item

from dropsync.config import load_config
from dropsync.sync.errors import ConfigurationError, RaindropClientError
from dropsync.sync.service import MirrorSyncService


def _service(source, ledger, cfg=None, clock=None) -> MirrorSyncService:
    return MirrorSyncService(
        cfg or config_from(),
        source_factory=lambda _cfg: source,
        destination_factory=lambda _cfg: ledger,
        clock=clock or (lambda: NOW),
    )


class TestIncrementalSync(unittest.IsolatedAsyncioTestCase):
    async def test_first_run_mirrors_window_and_second_run_is_idle(self):
        source = FakeSource(
            [
                make_item(1, NOW - timedelta(hours=1)),
                make_item(2, NOW - timedelta(hours=30)),
                make_item(3, NOW - timedelta(days=20)),
            ]
        )
        ledger = FakeLedger()
        service = _service(source, ledger)

        first = await service.run_incremental_sync()
        assert sorted(first.created_ids) == [1, 2]
        assert first.union_candidates == 2
        assert first.pass_a.stop_reason == "short-final-page"
        assert first.window.lookback_hours == 48
        assert first.window.since == NOW - timedelta(hours=48, minutes=15)
        assert ledger.row_for(1).collection_title == "Reading List"

        second = await service.run_incremental_sync()
        assert second.created == 0
        assert second.updated == 0
        assert sorted(second.already_exists) == [1, 2]
        assert len(ledger.live_rows()) == 2

    async def test_edit_to_old_item_is_picked_up(self):
        item = make_item(3, NOW - timedelta(days=20))
        source = FakeSource([item])
        ledger = FakeLedger()
        ledger.add_row(3, last_update=item.last_modified)

        source.items[3] = make_item(
            3, item.created, last_update=NOW - timedelta(minutes=30), title="Edited"
        )
        result = await _service(source, ledger).run_incremental_sync()
        assert result.updated_ids == [3]
        assert ledger.row_for(3).title == "Edited"

    async def test_dry_run_writes_nothing(self):
        source = FakeSource([make_item(1, NOW - timedelta(hours=1))])
        ledger = FakeLedger()
        result = await _service(source, ledger).run_incremental_sync(dry_run=True)
        assert result.dry_run
        assert result.to_create_preview == [1]
        assert result.created == 0
        assert ledger.writes == []

    async def test_limit_caps_candidates(self):
        source = FakeSource([make_item(i, NOW - timedelta(hours=i)) for i in range(1, 10)])
        ledger = FakeLedger()
        result = await _service(source, ledger).run_incremental_sync(limit=3)
        assert result.union_candidates == 3
        assert result.created == 3

    async def test_missing_settings_fail_before_any_io(self):
        env = dict(BASE_ENV)
        del env["RAINDROP_ACCESS_TOKEN"]
        opened = []

        service = MirrorSyncService(
            load_config(env),
            source_factory=lambda cfg: opened.append("source") or FakeSource(),
            destination_factory=lambda cfg: opened.append("destination") or FakeLedger(),
        )
        with self.assertRaises(ConfigurationError) as ctx:
            await service.run_incremental_sync()
        assert ctx.exception.missing == ("RAINDROP_ACCESS_TOKEN",)
        assert opened == []

    async def test_listing_failure_aborts(self):
        class BrokenSource(FakeSource):
            async def list_recent(self, *args, **kwargs):
                raise RaindropClientError("rate limited", status_code=429)

        ledger = FakeLedger()
        with self.assertRaises(RaindropClientError):
            await _service(BrokenSource(), ledger).run_incremental_sync()
        assert ledger.writes == []

    async def test_concurrent_runs_are_serialized(self):
        active = 0
        peak = 0

        class SlowSource(FakeSource):
            async def list_recent(self, *args, **kwargs):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1
                return await super().list_recent(*args, **kwargs)

        source = SlowSource([make_item(1, NOW - timedelta(hours=1))])
        ledger = FakeLedger()
        service = _service(source, ledger)
        first, second = await asyncio.gather(
            service.run_incremental_sync(), service.run_incremental_sync()
        )
        assert peak == 1
        assert first.created + second.created == 1
        assert len(ledger.live_rows()) == 1


class TestReconcile(unittest.IsolatedAsyncioTestCase):
    async def test_reconcile_reports_totals_and_archives_after_grace(self):
        source = FakeSource([make_item(i, NOW - timedelta(days=i)) for i in (1, 2, 3)])
        ledger = FakeLedger()
        for i in (1, 2, 3):
            ledger.add_row(i)
        source.remove(2)

        now = {"value": NOW}
        service = _service(source, ledger, clock=lambda: now["value"])

        first = await service.run_reconcile()
        assert first.delete_detected == [2]
        assert first.totals.notion_rows == 3
        assert first.totals.raindrop_ids == 2
        assert first.pages_fetched == 1
        assert first.collection_id == "123"
        assert first.grace_hours == 24

        now["value"] = NOW + timedelta(hours=25)
        second = await service.run_reconcile()
        assert second.delete_archived_now == [2]
        assert ledger.row_for(2) is None
        assert len(ledger.live_rows()) == 2

    async def test_reconcile_dry_run(self):
        source = FakeSource([])
        ledger = FakeLedger()
        ledger.add_row(9)
        result = await _service(source, ledger).run_reconcile(dry_run=True)
        assert result.dry_run
        assert result.delete_detected == [9]
        assert ledger.writes == []


if __name__ == "__main__":
    unittest.main()
