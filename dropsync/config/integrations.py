from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ._validators import _clean_token, _parse_int_in_range

logger = logging.getLogger(__name__)


class RaindropConfig(BaseModel):
    """Raindrop.io source ledger configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(default="", validation_alias="RAINDROP_ACCESS_TOKEN")
    collection_id: str = Field(default="", validation_alias="RAINDROP_COLLECTION_ID")
    api_url: str = Field(
        default="https://api.raindrop.io/rest/v1",
        validation_alias="RAINDROP_API_URL",
    )
    timeout_sec: int = Field(default=30, validation_alias="RAINDROP_TIMEOUT_SEC")

    @field_validator("access_token", mode="before")
    @classmethod
    def _validate_access_token(cls, value: Any) -> str:
        return _clean_token(value, name="Raindrop")

    @field_validator("collection_id", mode="before")
    @classmethod
    def _validate_collection_id(cls, value: Any) -> str:
        if value in (None, ""):
            return ""
        raw = str(value).strip()
        try:
            int(raw)
        except ValueError as exc:
            msg = "Raindrop collection ID must be an integer"
            raise ValueError(msg) from exc
        return raw

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or "https://api.raindrop.io/rest/v1").strip()
        if not url:
            return "https://api.raindrop.io/rest/v1"
        return url.rstrip("/")

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Raindrop timeout", default=30, minimum=1, maximum=600
        )


class NotionConfig(BaseModel):
    """Notion destination ledger configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_token: str = Field(default="", validation_alias="NOTION_API_TOKEN")
    database_id: str = Field(default="", validation_alias="NOTION_DATABASE_ID")
    api_url: str = Field(default="https://api.notion.com/v1", validation_alias="NOTION_API_URL")
    notion_version: str = Field(default="2022-06-28", validation_alias="NOTION_VERSION")
    timeout_sec: int = Field(default=30, validation_alias="NOTION_TIMEOUT_SEC")
    lookup_chunk_size: int = Field(
        default=25,
        validation_alias="NOTION_LOOKUP_CHUNK_SIZE",
        description="Raindrop IDs per OR-filter query; bounded by Notion's filter clause limit",
    )
    write_delay_ms: int = Field(
        default=150,
        validation_alias="NOTION_WRITE_DELAY_MS",
        description="Pause after each mutating call to stay under Notion's rate limit",
    )
    archive_pending_status: str = Field(
        default="Archived",
        validation_alias="NOTION_ARCHIVE_PENDING_STATUS",
        description="Status select value applied when a deletion is first detected",
    )

    @field_validator("api_token", mode="before")
    @classmethod
    def _validate_api_token(cls, value: Any) -> str:
        return _clean_token(value, name="Notion")

    @field_validator("database_id", mode="before")
    @classmethod
    def _validate_database_id(cls, value: Any) -> str:
        if value in (None, ""):
            return ""
        raw = str(value).strip().replace("-", "")
        if len(raw) != 32 or any(ch not in "0123456789abcdefABCDEF" for ch in raw):
            msg = "Notion database ID must be a 32 character hex identifier"
            raise ValueError(msg)
        return raw

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or "https://api.notion.com/v1").strip()
        return (url or "https://api.notion.com/v1").rstrip("/")

    @field_validator("timeout_sec", "lookup_chunk_size", "write_delay_ms", mode="before")
    @classmethod
    def _validate_int_fields(cls, value: Any, info: ValidationInfo) -> int:
        bounds = {
            "timeout_sec": (1, 600),
            "lookup_chunk_size": (1, 100),
            "write_delay_ms": (0, 10_000),
        }
        minimum, maximum = bounds[info.field_name]
        default = cls.model_fields[info.field_name].default
        return _parse_int_in_range(
            value,
            name=info.field_name.replace("_", " "),
            default=default,
            minimum=minimum,
            maximum=maximum,
        )

    @field_validator("archive_pending_status", mode="before")
    @classmethod
    def _validate_status(cls, value: Any) -> str:
        status = str(value or "Archived").strip()
        if not status:
            return "Archived"
        if "," in status or len(status) > 100:
            msg = "Archive pending status must be a valid Notion select option name"
            raise ValueError(msg)
        return status

    @property
    def write_delay_seconds(self) -> float:
        return self.write_delay_ms / 1000.0
