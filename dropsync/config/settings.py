from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from dotenv import dotenv_values
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from dropsync.sync.errors import ConfigurationError

from ._validators import _clean_token, _parse_int_in_range, parse_bool_flag
from .integrations import NotionConfig, RaindropConfig
from .sync import ReconcileConfig, SyncWindowConfig

logger = logging.getLogger(__name__)


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    trigger_token: str = Field(
        default="", validation_alias=AliasChoices("TRIGGER_TOKEN", "WEBHOOK_TOKEN")
    )
    scheduler_enabled: bool = Field(default=False, validation_alias="SCHEDULER_ENABLED")
    sync_interval_minutes: int = Field(default=10, validation_alias="SYNC_INTERVAL_MINUTES")
    reconcile_hour_utc: int = Field(default=3, validation_alias="RECONCILE_HOUR_UTC")

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Any) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        if not trimmed:
            return None
        if "\x00" in trimmed:
            msg = "Log file path contains invalid characters"
            raise ValueError(msg)
        return trimmed

    @field_validator("trigger_token", mode="before")
    @classmethod
    def _validate_trigger_token(cls, value: Any) -> str:
        return _clean_token(value, name="Trigger")

    @field_validator("scheduler_enabled", mode="before")
    @classmethod
    def _validate_scheduler_enabled(cls, value: Any) -> bool:
        return parse_bool_flag(value)

    @field_validator("sync_interval_minutes", mode="before")
    @classmethod
    def _validate_sync_interval(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Sync interval (minutes)", default=10, minimum=1, maximum=1440
        )

    @field_validator("reconcile_hour_utc", mode="before")
    @classmethod
    def _validate_reconcile_hour(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Reconcile hour (UTC)", default=3, minimum=0, maximum=23
        )


@dataclass(frozen=True)
class AppConfig:
    raindrop: RaindropConfig
    notion: NotionConfig
    window: SyncWindowConfig
    reconcile: ReconcileConfig
    runtime: RuntimeConfig


class Settings(BaseSettings):
    """Application settings assembled from flat environment variables.

    Nested models are populated by matching validation_alias on each field.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    raindrop: RaindropConfig = Field(default_factory=RaindropConfig)
    notion: NotionConfig = Field(default_factory=NotionConfig)
    window: SyncWindowConfig = Field(default_factory=SyncWindowConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @classmethod
    def _merge_nested(cls, data: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
        result = dict(data)
        merged_source = {**source, **data}

        for field_name, field_info in cls.model_fields.items():
            annotation = field_info.annotation
            if not isinstance(annotation, type) or not issubclass(annotation, BaseModel):
                continue

            nested_data: dict[str, Any] = {}
            for nested_field_name, nested_field in annotation.model_fields.items():
                env_value = cls._resolve_env_value(merged_source, nested_field)
                if env_value is not None:
                    nested_data[nested_field_name] = env_value

            if nested_data:
                if field_name in result and isinstance(result[field_name], dict):
                    result[field_name] = {**nested_data, **result[field_name]}
                else:
                    result[field_name] = nested_data

        return result

    @staticmethod
    def _resolve_env_value(data: dict[str, Any], field: Any) -> Any | None:
        """Resolve environment variable value for a field using its aliases."""
        aliases: list[str] = []
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            for choice in alias.choices:
                if isinstance(choice, str):
                    aliases.append(choice)
        elif isinstance(alias, str):
            aliases.append(alias)
        if field.alias:
            aliases.append(field.alias)

        for name in aliases:
            if name in data:
                return data[name]
        return None

    def as_app_config(self) -> AppConfig:
        return AppConfig(
            raindrop=self.raindrop,
            notion=self.notion,
            window=self.window,
            reconcile=self.reconcile,
            runtime=self.runtime,
        )


def load_config(env: dict[str, str] | None = None) -> AppConfig:
    """Load application configuration.

    Reads ``.env`` (when present) overlaid by the process environment. Passing
    ``env`` replaces both sources, which keeps tests hermetic.

    Raises:
        ConfigurationError: If a setting fails validation.
    """
    if env is None:
        # Process environment wins over the .env file
        dotenv_source = {k: v for k, v in dotenv_values(".env").items() if v is not None}
        source: dict[str, Any] = {**dotenv_source, **os.environ}
    else:
        source = dict(env)
    try:
        settings = Settings(_env_file=None, **Settings._merge_nested({}, source))
    except ValidationError as exc:
        msg = f"Configuration validation failed: {exc}"
        raise ConfigurationError(msg) from exc
    return settings.as_app_config()


def require_sync_settings(cfg: AppConfig) -> None:
    """Fail fast, before any I/O, when a setting both sync paths need is missing."""
    missing: list[str] = []
    if not cfg.raindrop.access_token:
        missing.append("RAINDROP_ACCESS_TOKEN")
    if not cfg.raindrop.collection_id:
        missing.append("RAINDROP_COLLECTION_ID")
    if not cfg.notion.api_token:
        missing.append("NOTION_API_TOKEN")
    if not cfg.notion.database_id:
        missing.append("NOTION_DATABASE_ID")
    if missing:
        msg = f"Missing {', '.join(missing)}"
        raise ConfigurationError(msg, missing=tuple(missing))
