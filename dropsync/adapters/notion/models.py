"""Projections of Notion database pages used by the sync engines."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime

from pydantic import BaseModel, ConfigDict


class ExistingPage(BaseModel):
    """Result of a by-Raindrop-ID lookup: just what the upsert decision needs."""

    model_config = ConfigDict(frozen=True)

    page_id: str
    raindrop_id: int
    raindrop_last_update: datetime | None = None
    locked: bool = False


class LedgerRow(BaseModel):
    """A non-archived Notion row as seen by reconciliation."""

    model_config = ConfigDict(frozen=True)

    page_id: str
    raindrop_id: int
    locked: bool = False
    deleted_flag: bool = False
    delete_detected_at: datetime | None = None
    last_synced_at: datetime | None = None
    raindrop_last_update: datetime | None = None
