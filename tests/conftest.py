"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest
from mirror_fakes import config_from

from dropsync.config import AppConfig


@pytest.fixture
def app_config() -> AppConfig:
    return config_from()
