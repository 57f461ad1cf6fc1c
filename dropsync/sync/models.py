"""Run summaries returned by the incremental sync and the reconciliation."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime

from pydantic import BaseModel, Field

from dropsync.adapters.raindrop.models import RaindropItem  # noqa: TC001
from dropsync.config.sync import DeleteMode  # noqa: TC001


class PassAStats(BaseModel):
    pages_fetched: int = 0
    stop_reason: str | None = None
    candidates: int = 0


class PassBStats(BaseModel):
    pages_fetched: int = 0
    candidates: int = 0


class ChangeSet(BaseModel):
    """Deduplicated candidates from the recency scan and the change scan."""

    candidates: list[RaindropItem] = Field(default_factory=list)
    pass_a: PassAStats = Field(default_factory=PassAStats)
    pass_b: PassBStats = Field(default_factory=PassBStats)


class UpsertOutcome(BaseModel):
    """Per-candidate classification produced by the upsert decision engine."""

    created: int = 0
    updated: int = 0
    created_ids: list[int] = Field(default_factory=list)
    updated_ids: list[int] = Field(default_factory=list)
    to_create_preview: list[int] = Field(default_factory=list)
    to_update_preview: list[int] = Field(default_factory=list)
    skipped_locked: list[int] = Field(default_factory=list)
    already_exists: list[int] = Field(default_factory=list)


class WindowSummary(BaseModel):
    lookback_hours: int
    overlap_minutes: int
    since: datetime


class IncrementalSyncResult(BaseModel):
    """Result of one incremental sync invocation."""

    dry_run: bool = False
    window: WindowSummary
    pass_a: PassAStats = Field(default_factory=PassAStats)
    pass_b: PassBStats = Field(default_factory=PassBStats)
    union_candidates: int = 0
    created: int = 0
    updated: int = 0
    created_ids: list[int] = Field(default_factory=list)
    updated_ids: list[int] = Field(default_factory=list)
    to_create_preview: list[int] = Field(default_factory=list)
    to_update_preview: list[int] = Field(default_factory=list)
    skipped_locked: list[int] = Field(default_factory=list)
    already_exists: list[int] = Field(default_factory=list)
    duration_seconds: float = 0.0


class ReconcileTotals(BaseModel):
    notion_rows: int = 0
    raindrop_ids: int = 0


class ReconcileOutcome(BaseModel):
    """Per-row classification produced by the reconciliation engine."""

    moved: list[int] = Field(default_factory=list)
    delete_detected: list[int] = Field(default_factory=list)
    still_in_grace: list[int] = Field(default_factory=list)
    delete_archived_now: list[int] = Field(default_factory=list)
    cleared_flags: list[int] = Field(default_factory=list)
    skipped_locked: list[int] = Field(default_factory=list)
    detail_errors: list[int] = Field(default_factory=list)


class ReconcileResult(ReconcileOutcome):
    """Result of one reconciliation invocation."""

    dry_run: bool = False
    delete_mode: DeleteMode
    grace_hours: int
    collection_id: str
    pages_fetched: int = 0
    enumeration_complete: bool = True
    totals: ReconcileTotals = Field(default_factory=ReconcileTotals)
    duration_seconds: float = 0.0
