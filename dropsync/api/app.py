"""FastAPI application factory: sync triggers, credential probes, scheduler lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from dropsync import __version__
from dropsync.api.error_handlers import (
    api_exception_handler,
    dropsync_exception_handler,
    global_exception_handler,
    validation_exception_handler,
)
from dropsync.api.exceptions import APIException
from dropsync.api.middleware import correlation_id_middleware
from dropsync.api.responses import success_response
from dropsync.api.routers import health, sync
from dropsync.config import AppConfig, load_config
from dropsync.core.logging_utils import get_logger, setup_json_logging
from dropsync.core.time_utils import utc_now
from dropsync.services.scheduler import SchedulerService
from dropsync.sync.errors import ConfigurationError, UpstreamError
from dropsync.sync.service import (
    MirrorSyncService,
    NotionFactory,
    RaindropFactory,
    notion_ledger_from_config,
    raindrop_client_from_config,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg: AppConfig = app.state.config
    scheduler: SchedulerService | None = None
    if cfg.runtime.scheduler_enabled:
        scheduler = SchedulerService(cfg, app.state.sync_service)
        await scheduler.start()
    app.state.scheduler = scheduler
    try:
        yield
    finally:
        if scheduler:
            await scheduler.stop()


def create_app(
    cfg: AppConfig | None = None,
    *,
    raindrop_factory: RaindropFactory | None = None,
    notion_factory: NotionFactory | None = None,
    configure_logging: bool = False,
) -> FastAPI:
    """Build the API around one config and one shared mirror service.

    The client factories default to the real HTTP clients; tests pass
    factories whose clients use ``httpx.MockTransport``.
    """
    cfg = cfg or load_config()
    if configure_logging:
        setup_json_logging(cfg.runtime.log_level, log_file=cfg.runtime.log_file)

    raindrop_factory = raindrop_factory or raindrop_client_from_config
    notion_factory = notion_factory or notion_ledger_from_config

    app = FastAPI(
        title="dropsync",
        description="One-way Raindrop.io to Notion bookmark mirror",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg
    app.state.raindrop_factory = raindrop_factory
    app.state.notion_factory = notion_factory
    app.state.sync_service = MirrorSyncService(
        cfg, source_factory=raindrop_factory, destination_factory=notion_factory
    )
    app.state.scheduler = None

    app.middleware("http")(correlation_id_middleware)

    app.include_router(sync.router, prefix="/api", tags=["Sync"])
    app.include_router(health.router, prefix="/api/health", tags=["Health"])

    @app.get("/health")
    async def health_check(request: Request):
        """Liveness check; does not touch either ledger."""
        return success_response(
            {
                "status": "healthy",
                "timestamp": utc_now().isoformat().replace("+00:00", "Z"),
            },
            correlation_id=getattr(request.state, "correlation_id", None),
        )

    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(ConfigurationError, dropsync_exception_handler)
    app.add_exception_handler(UpstreamError, dropsync_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.info(
        "api_app_created",
        extra={"version": __version__, "scheduler_enabled": cfg.runtime.scheduler_enabled},
    )
    return app

