"""Error taxonomy for sync and reconciliation runs."""

from __future__ import annotations


class DropsyncError(Exception):
    """Base exception for all mirror errors."""


class ConfigurationError(DropsyncError):
    """A required setting is missing or invalid; raised before any I/O."""

    def __init__(self, message: str, *, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = missing


class UpstreamError(DropsyncError):
    """A ledger API returned a non-success status or could not be reached."""

    service = "upstream"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RaindropClientError(UpstreamError):
    service = "raindrop"


class NotionClientError(UpstreamError):
    service = "notion"
