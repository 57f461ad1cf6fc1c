"""Tests for the grace-period delete state machine."""

from __future__ import annotations

import unittest
from datetime import timedelta

from mirror_fakes import NOW

from dropsync.adapters.notion.models import LedgerRow
from dropsync.config import DeleteMode
from dropsync.sync.deletion import (
    Archived,
    DeleteAction,
    DeletionDetected,
    Present,
    delete_state_of,
    has_delete_marker,
    next_delete_transition,
)


def _transition(state, *, hours_later=0.0, locked=False, mode=DeleteMode.ARCHIVE):
    return next_delete_transition(
        state,
        now=NOW + timedelta(hours=hours_later),
        grace_hours=24,
        delete_mode=mode,
        locked=locked,
    )


class TestDeleteStateOf(unittest.TestCase):
    def test_unflagged_row_is_present(self):
        row = LedgerRow(page_id="p", raindrop_id=1)
        assert delete_state_of(row) == Present()
        assert not has_delete_marker(row)

    def test_flag_with_timestamp_is_detected(self):
        row = LedgerRow(page_id="p", raindrop_id=1, deleted_flag=True, delete_detected_at=NOW)
        assert delete_state_of(row) == DeletionDetected(at=NOW)

    def test_flag_without_timestamp_counts_as_present_but_marked(self):
        row = LedgerRow(page_id="p", raindrop_id=1, deleted_flag=True)
        assert delete_state_of(row) == Present()
        assert has_delete_marker(row)

    def test_stray_timestamp_is_a_marker(self):
        row = LedgerRow(page_id="p", raindrop_id=1, delete_detected_at=NOW)
        assert delete_state_of(row) == Present()
        assert has_delete_marker(row)


class TestNextDeleteTransition(unittest.TestCase):
    def test_first_detection_stamps_now(self):
        result = _transition(Present())
        assert result.action is DeleteAction.MARK_DETECTED
        assert result.next_state == DeletionDetected(at=NOW)

    def test_within_grace_waits(self):
        result = _transition(DeletionDetected(at=NOW), hours_later=23.9)
        assert result.action is DeleteAction.WAIT
        assert result.next_state == DeletionDetected(at=NOW)

    def test_grace_boundary_archives(self):
        result = _transition(DeletionDetected(at=NOW), hours_later=24)
        assert result.action is DeleteAction.ARCHIVE
        assert result.next_state == Archived()

    def test_delete_mode_off_holds_past_grace(self):
        result = _transition(DeletionDetected(at=NOW), hours_later=100, mode=DeleteMode.OFF)
        assert result.action is DeleteAction.HOLD

    def test_locked_row_always_holds(self):
        for state in (Present(), DeletionDetected(at=NOW - timedelta(days=3))):
            result = _transition(state, locked=True)
            assert result.action is DeleteAction.HOLD
            assert result.next_state == state

    def test_archived_is_terminal(self):
        result = _transition(Archived(), hours_later=500)
        assert result.action is DeleteAction.NONE
        assert result.next_state == Archived()


if __name__ == "__main__":
    unittest.main()
