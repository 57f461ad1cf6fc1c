from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ._validators import _parse_int_in_range


class DeleteMode(str, Enum):
    ARCHIVE = "archive"
    OFF = "off"


class DetailErrorPolicy(str, Enum):
    """What reconciliation does when a single-item detail check keeps failing."""

    TREAT_AS_MISSING = "treat_as_missing"
    SKIP = "skip"


class SyncWindowConfig(BaseModel):
    """Knobs for the incremental (every few minutes) sync pass."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    lookback_hours: int = Field(default=48, validation_alias="LOOKBACK_HOURS")
    overlap_minutes: int = Field(default=15, validation_alias="OVERLAP_MINUTES")
    per_page: int = Field(
        default=50,
        validation_alias="PER_PAGE",
        description="Raindrop page size (the API caps perpage at 50)",
    )
    max_pages: int = Field(default=10, validation_alias="MAX_PAGES")
    consecutive_hits_stop: int = Field(default=50, validation_alias="CONSECUTIVE_HITS_STOP")

    @field_validator(
        "lookback_hours",
        "overlap_minutes",
        "per_page",
        "max_pages",
        "consecutive_hits_stop",
        mode="before",
    )
    @classmethod
    def _validate_int_fields(cls, value: Any, info: ValidationInfo) -> int:
        bounds = {
            "lookback_hours": (1, 24 * 90),
            "overlap_minutes": (0, 24 * 60),
            "per_page": (1, 50),
            "max_pages": (1, 1000),
            "consecutive_hits_stop": (1, 10_000),
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


class ReconcileConfig(BaseModel):
    """Knobs for the nightly full reconciliation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    max_pages: int = Field(default=200, validation_alias="RECONCILE_MAX_PAGES")
    delete_mode: DeleteMode = Field(default=DeleteMode.ARCHIVE, validation_alias="DELETE_MODE")
    delete_grace_hours: int = Field(default=24, validation_alias="DELETE_GRACE_HOURS")
    detail_error_policy: DetailErrorPolicy = Field(
        default=DetailErrorPolicy.TREAT_AS_MISSING,
        validation_alias="RECONCILE_DETAIL_ERROR_POLICY",
    )

    @field_validator("max_pages", mode="before")
    @classmethod
    def _validate_max_pages(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Reconcile max pages", default=200, minimum=1, maximum=10_000
        )

    @field_validator("delete_grace_hours", mode="before")
    @classmethod
    def _validate_grace(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Delete grace hours", default=24, minimum=0, maximum=24 * 365
        )

    @field_validator("delete_mode", mode="before")
    @classmethod
    def _validate_delete_mode(cls, value: Any) -> DeleteMode:
        mode = str(value or "archive").strip().lower()
        try:
            return DeleteMode(mode)
        except ValueError as exc:
            msg = f"Invalid delete mode: {mode}. Must be one of ['archive', 'off']"
            raise ValueError(msg) from exc

    @field_validator("detail_error_policy", mode="before")
    @classmethod
    def _validate_policy(cls, value: Any) -> DetailErrorPolicy:
        policy = str(value or "treat_as_missing").strip().lower()
        try:
            return DetailErrorPolicy(policy)
        except ValueError as exc:
            valid = sorted(p.value for p in DetailErrorPolicy)
            msg = f"Invalid detail error policy: {policy}. Must be one of {valid}"
            raise ValueError(msg) from exc
