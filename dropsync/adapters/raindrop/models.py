"""Pydantic models for the Raindrop.io REST API."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Raindrop's system collection holding removed items
TRASH_COLLECTION_ID = -99


def hostname_from_url(url: str | None) -> str | None:
    if not url:
        return None
    try:
        return urlparse(url).hostname or None
    except ValueError:
        return None


class RaindropCollectionRef(BaseModel):
    """Collection reference embedded in a raindrop (``{"$id": 123}``)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(alias="$id")
    title: str | None = None


class RaindropItem(BaseModel):
    """A bookmark as returned by ``GET /raindrops/{collectionId}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(alias="_id")
    title: str = ""
    link: str = ""
    excerpt: str = ""
    note: str = ""
    tags: list[str] = Field(default_factory=list)
    created: datetime
    last_update: datetime | None = Field(default=None, alias="lastUpdate")
    domain: str | None = None
    collection: RaindropCollectionRef | None = None
    collection_id: int | None = Field(default=None, alias="collectionId")

    @field_validator("title", "excerpt", "note", "link", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(tag) for tag in value if tag not in (None, "")]

    @model_validator(mode="after")
    def _fill_derived(self) -> RaindropItem:
        if not self.title:
            self.title = self.link or "Untitled"
        if not self.domain:
            self.domain = hostname_from_url(self.link)
        return self

    @property
    def last_modified(self) -> datetime:
        """Freshness key: last update when Raindrop reports one, else creation time."""
        return self.last_update or self.created

    @property
    def collection_ref_id(self) -> int | None:
        if self.collection_id is not None:
            return self.collection_id
        if self.collection is not None:
            return self.collection.id
        return None


class RaindropPage(BaseModel):
    """One page of ``GET /raindrops/{collectionId}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    result: bool = True
    items: list[RaindropItem] = Field(default_factory=list)
    count: int | None = None


class RaindropDetail(BaseModel):
    """Outcome of a direct ``GET /raindrop/{id}`` existence check."""

    exists: bool
    removed: bool = False
    collection_id: int | None = None
    last_update: datetime | None = None

    @property
    def is_live(self) -> bool:
        return self.exists and not self.removed

    @classmethod
    def missing(cls) -> RaindropDetail:
        return cls(exists=False, removed=False)

    @classmethod
    def from_item_payload(cls, item: dict[str, Any]) -> RaindropDetail:
        collection = item.get("collection") or {}
        collection_id = item.get("collectionId")
        if collection_id is None and isinstance(collection, dict):
            collection_id = collection.get("$id")
        removed = bool(item.get("removed")) or collection_id == TRASH_COLLECTION_ID
        return cls(
            exists=True,
            removed=removed,
            collection_id=collection_id,
            last_update=item.get("lastUpdate"),
        )


class RaindropUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int | None = Field(default=None, alias="_id")
    pro: bool = False

    @property
    def plan(self) -> str:
        return "pro" if self.pro else "free"
