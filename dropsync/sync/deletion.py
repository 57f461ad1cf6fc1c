"""Grace-period delete state machine for mirrored rows.

A row's delete tracking lives in two Notion properties (``Deleted in
Raindrop`` and ``Delete Detected At``). They are read back into one of three
explicit states:

- ``Present``: not flagged. A flag without a detection time is also treated
  as not yet flagged, so the next detection stamps it properly.
- ``DeletionDetected(at)``: flagged, grace period running since ``at``.
- ``Archived``: terminal; the page was archived in Notion.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from dropsync.config.sync import DeleteMode
from dropsync.core.time_utils import ensure_utc, hours_between

if TYPE_CHECKING:
    from datetime import datetime

    from dropsync.adapters.notion.models import LedgerRow


@dataclass(frozen=True)
class Present:
    pass


@dataclass(frozen=True)
class DeletionDetected:
    at: datetime


@dataclass(frozen=True)
class Archived:
    pass


DeleteState = Present | DeletionDetected | Archived


class DeleteAction(str, Enum):
    MARK_DETECTED = "mark_detected"
    WAIT = "wait"
    ARCHIVE = "archive"
    HOLD = "hold"
    NONE = "none"


@dataclass(frozen=True)
class DeleteTransition:
    action: DeleteAction
    next_state: DeleteState


def delete_state_of(row: LedgerRow) -> DeleteState:
    if row.deleted_flag and row.delete_detected_at is not None:
        return DeletionDetected(at=ensure_utc(row.delete_detected_at))
    return Present()


def has_delete_marker(row: LedgerRow) -> bool:
    """Either tracking property is set; both get cleared together."""
    return row.deleted_flag or row.delete_detected_at is not None


def next_delete_transition(
    state: DeleteState,
    *,
    now: datetime,
    grace_hours: float,
    delete_mode: DeleteMode,
    locked: bool,
) -> DeleteTransition:
    """Transition for a row whose Raindrop item is confirmed missing or removed.

    Locked rows always hold: they are never flagged, restatused or archived.
    Past the grace period with ``delete_mode=off`` the row also holds.
    """
    if isinstance(state, Archived):
        return DeleteTransition(DeleteAction.NONE, state)
    if locked:
        return DeleteTransition(DeleteAction.HOLD, state)
    if isinstance(state, Present):
        return DeleteTransition(DeleteAction.MARK_DETECTED, DeletionDetected(at=ensure_utc(now)))
    if hours_between(state.at, now) < grace_hours:
        return DeleteTransition(DeleteAction.WAIT, state)
    if delete_mode is DeleteMode.ARCHIVE:
        return DeleteTransition(DeleteAction.ARCHIVE, Archived())
    return DeleteTransition(DeleteAction.HOLD, state)
