from __future__ import annotations

from ._validators import clamp_int, parse_bool_flag
from .integrations import NotionConfig, RaindropConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config, require_sync_settings
from .sync import DeleteMode, DetailErrorPolicy, ReconcileConfig, SyncWindowConfig

__all__ = [
    "AppConfig",
    "DeleteMode",
    "DetailErrorPolicy",
    "NotionConfig",
    "RaindropConfig",
    "ReconcileConfig",
    "RuntimeConfig",
    "Settings",
    "SyncWindowConfig",
    "clamp_int",
    "load_config",
    "parse_bool_flag",
    "require_sync_settings",
]
