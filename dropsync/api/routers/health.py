"""Credential probes for both ledgers."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Request

from dropsync.api.dependencies import get_config, get_notion_factory, get_raindrop_factory
from dropsync.api.exceptions import ConfigurationAPIError
from dropsync.api.responses import success_response
from dropsync.config import AppConfig
from dropsync.core.logging_utils import get_logger
from dropsync.sync.service import NotionFactory, RaindropFactory

logger = get_logger(__name__)

router = APIRouter()


@router.get("/raindrop")
async def raindrop_health(
    request: Request,
    cfg: AppConfig = Depends(get_config),
    open_client: RaindropFactory = Depends(get_raindrop_factory),
) -> dict:
    """Check the Raindrop token and the configured collection."""
    if not cfg.raindrop.access_token:
        raise ConfigurationAPIError(
            "Missing RAINDROP_ACCESS_TOKEN", missing=("RAINDROP_ACCESS_TOKEN",)
        )

    start = time.perf_counter()
    async with open_client(cfg) as client:
        user = await client.get_user()
        collection_title = None
        if cfg.raindrop.collection_id:
            collection_title = await client.get_collection_title(cfg.raindrop.collection_id)
    latency_ms = round((time.perf_counter() - start) * 1000, 2)

    logger.info(
        "health_raindrop_ok",
        extra={"user_id": user.id, "latency_ms": latency_ms},
    )
    return success_response(
        {
            "service": "raindrop",
            "user_id": user.id,
            "plan": user.plan,
            "collection_id": cfg.raindrop.collection_id or None,
            "collection_title": collection_title,
            "latency_ms": latency_ms,
        },
        correlation_id=getattr(request.state, "correlation_id", None),
    )


@router.get("/notion")
async def notion_health(
    request: Request,
    cfg: AppConfig = Depends(get_config),
    open_ledger: NotionFactory = Depends(get_notion_factory),
) -> dict:
    """Check the Notion token and access to the target database."""
    missing = tuple(
        name
        for name, value in (
            ("NOTION_API_TOKEN", cfg.notion.api_token),
            ("NOTION_DATABASE_ID", cfg.notion.database_id),
        )
        if not value
    )
    if missing:
        raise ConfigurationAPIError(f"Missing {', '.join(missing)}", missing=missing)

    start = time.perf_counter()
    async with open_ledger(cfg) as ledger:
        database = await ledger.describe_database()
    latency_ms = round((time.perf_counter() - start) * 1000, 2)

    logger.info(
        "health_notion_ok",
        extra={"database_id": database["database_id"], "latency_ms": latency_ms},
    )
    return success_response(
        {"service": "notion", **database, "latency_ms": latency_ms},
        correlation_id=getattr(request.state, "correlation_id", None),
    )
