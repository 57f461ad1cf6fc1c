"""Request dependencies: app config, the shared service, trigger-token check."""

from __future__ import annotations

import hmac

from fastapi import Header, Query, Request

from dropsync.api.exceptions import AuthenticationError
from dropsync.config import AppConfig
from dropsync.sync.service import MirrorSyncService, NotionFactory, RaindropFactory


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_sync_service(request: Request) -> MirrorSyncService:
    return request.app.state.sync_service


def get_raindrop_factory(request: Request) -> RaindropFactory:
    return request.app.state.raindrop_factory


def get_notion_factory(request: Request) -> NotionFactory:
    return request.app.state.notion_factory


def require_trigger_token(
    request: Request,
    x_webhook_token: str | None = Header(default=None),
    token: str | None = Query(default=None),
) -> None:
    """POST triggers must present TRIGGER_TOKEN when one is configured.

    GET requests (scheduled cron pings) pass through unchecked.
    """
    expected = get_config(request).runtime.trigger_token
    if request.method != "POST" or not expected:
        return
    presented = x_webhook_token if x_webhook_token is not None else token
    if presented is None or not hmac.compare_digest(presented, expected):
        raise AuthenticationError()
