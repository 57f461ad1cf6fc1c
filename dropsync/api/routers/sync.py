"""Trigger endpoints for the incremental sync and the nightly reconciliation."""

from fastapi import APIRouter, Depends, Query, Request

from dropsync.api.dependencies import get_sync_service, require_trigger_token
from dropsync.api.responses import success_response
from dropsync.config import clamp_int, parse_bool_flag
from dropsync.core.logging_utils import get_logger
from dropsync.sync.constants import LIMIT_MAX, LIMIT_MIN
from dropsync.sync.service import MirrorSyncService

logger = get_logger(__name__)
router = APIRouter(dependencies=[Depends(require_trigger_token)])


def _parse_limit(raw: str | None) -> int | None:
    """Clamp ``?limit=`` into range; missing or non-numeric means no cap."""
    if raw is None:
        return None
    return clamp_int(raw, default=None, minimum=LIMIT_MIN, maximum=LIMIT_MAX)


@router.api_route("/sync", methods=["GET", "POST"])
async def trigger_sync(
    request: Request,
    dry_run: str | None = Query(None, alias="dryRun"),
    limit: str | None = Query(None, description="Hard cap on candidates (1-500), for testing"),
    service: MirrorSyncService = Depends(get_sync_service),
) -> dict:
    """Run one incremental sync and return its summary."""
    correlation_id = getattr(request.state, "correlation_id", None)
    result = await service.run_incremental_sync(
        dry_run=parse_bool_flag(dry_run),
        limit=_parse_limit(limit),
        correlation_id=correlation_id,
    )
    return success_response(result, correlation_id=correlation_id)


@router.api_route("/reconcile", methods=["GET", "POST"])
async def trigger_reconcile(
    request: Request,
    dry_run: str | None = Query(None, alias="dryRun"),
    service: MirrorSyncService = Depends(get_sync_service),
) -> dict:
    """Run one full reconciliation and return its summary."""
    correlation_id = getattr(request.state, "correlation_id", None)
    result = await service.run_reconcile(
        dry_run=parse_bool_flag(dry_run), correlation_id=correlation_id
    )
    return success_response(result, correlation_id=correlation_id)
