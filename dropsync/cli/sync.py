"""Run one incremental sync or reconciliation from the shell or cron.

Example crontab entries:
    */10 * * * * cd /srv/dropsync && .venv/bin/python -m dropsync.cli.sync incremental
    0 3 * * * cd /srv/dropsync && .venv/bin/python -m dropsync.cli.sync reconcile

Usage:
    python -m dropsync.cli.sync {incremental,reconcile} [--dry-run] [--limit N] [--json]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING

from dropsync.config import clamp_int, load_config
from dropsync.core.logging_utils import setup_json_logging
from dropsync.sync.constants import LIMIT_MAX, LIMIT_MIN
from dropsync.sync.errors import ConfigurationError, UpstreamError
from dropsync.sync.service import MirrorSyncService

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dropsync.sync.models import IncrementalSyncResult, ReconcileResult

logger = logging.getLogger("dropsync.cli")

EXIT_OK = 0
EXIT_UPSTREAM_ERROR = 1
EXIT_CONFIG_ERROR = 2

PREVIEW_ROWS = 10


def _print_ids(label: str, ids: list[int]) -> None:
    print(f"  {label}: {len(ids)}")
    if ids:
        shown = ", ".join(str(i) for i in ids[:PREVIEW_ROWS])
        more = f" ... and {len(ids) - PREVIEW_ROWS} more" if len(ids) > PREVIEW_ROWS else ""
        print(f"    {shown}{more}")


def print_sync_summary(result: IncrementalSyncResult) -> None:
    title = "Incremental Sync Preview (DRY RUN)" if result.dry_run else "Incremental Sync Summary"
    print(f"\n=== {title} ===")
    print(
        f"Window: since {result.window.since.isoformat()} "
        f"({result.window.lookback_hours}h + {result.window.overlap_minutes}m)"
    )
    print(
        f"Pass A: {result.pass_a.pages_fetched} pages, "
        f"{result.pass_a.candidates} candidates, stop reason {result.pass_a.stop_reason}"
    )
    print(f"Pass B: {result.pass_b.pages_fetched} pages, {result.pass_b.candidates} candidates")
    print(f"Union: {result.union_candidates} candidates")
    if result.dry_run:
        _print_ids("Would create", result.to_create_preview)
        _print_ids("Would update", result.to_update_preview)
    else:
        _print_ids("Created", result.created_ids)
        _print_ids("Updated", result.updated_ids)
    _print_ids("Skipped (locked)", result.skipped_locked)
    print(f"  Already up to date or locked: {len(result.already_exists)}")
    print(f"Duration: {result.duration_seconds:.1f}s")


def print_reconcile_summary(result: ReconcileResult) -> None:
    title = "Reconcile Preview (DRY RUN)" if result.dry_run else "Reconcile Summary"
    print(f"\n=== {title} ===")
    print(
        f"Collection {result.collection_id}: {result.totals.raindrop_ids} Raindrop items "
        f"over {result.pages_fetched} pages, {result.totals.notion_rows} Notion rows"
    )
    if not result.enumeration_complete:
        print("WARNING: page budget reached, Raindrop listing is partial")
    print(f"Delete mode: {result.delete_mode.value}, grace {result.grace_hours}h")
    _print_ids("Moved", result.moved)
    _print_ids("Delete detected", result.delete_detected)
    _print_ids("Still in grace", result.still_in_grace)
    _print_ids("Archived now", result.delete_archived_now)
    _print_ids("Flags cleared", result.cleared_flags)
    _print_ids("Skipped (locked or delete mode off)", result.skipped_locked)
    _print_ids("Detail check errors", result.detail_errors)
    print(f"Duration: {result.duration_seconds:.1f}s")


async def run_command(
    command: str,
    *,
    dry_run: bool = False,
    limit: int | None = None,
    as_json: bool = False,
    service: MirrorSyncService | None = None,
) -> int:
    """Run one job and print its summary.

    Returns:
        Exit code (0 success, 1 upstream failure, 2 configuration error)
    """
    try:
        if service is None:
            service = MirrorSyncService(load_config())
        if command == "incremental":
            result: IncrementalSyncResult | ReconcileResult = await service.run_incremental_sync(
                dry_run=dry_run, limit=limit
            )
        else:
            result = await service.run_reconcile(dry_run=dry_run)
    except ConfigurationError as exc:
        logger.error("cli_config_error", extra={"error": str(exc), "missing": list(exc.missing)})
        print(f"\nCONFIGURATION ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except UpstreamError as exc:
        logger.exception("cli_run_failed", extra={"command": command, "service": exc.service})
        print(f"\nERROR ({exc.service}): {exc}", file=sys.stderr)
        return EXIT_UPSTREAM_ERROR

    if as_json:
        print(json.dumps({"ok": True, **result.model_dump(mode="json")}, indent=2))
    elif command == "incremental":
        print_sync_summary(result)  # type: ignore[arg-type]
    else:
        print_reconcile_summary(result)  # type: ignore[arg-type]
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dropsync", description="Mirror a Raindrop.io collection into a Notion database"
    )
    parser.add_argument(
        "command",
        choices=["incremental", "reconcile"],
        help="incremental: recent changes; reconcile: full comparison with delete tracking",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Classify everything but write nothing to Notion",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help=f"Hard cap on incremental candidates ({LIMIT_MIN}-{LIMIT_MAX}), for testing",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the run summary as JSON",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config()
    except ConfigurationError as exc:
        print(f"\nCONFIGURATION ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_json_logging(cfg.runtime.log_level, log_file=cfg.runtime.log_file)
    limit = None
    if args.limit is not None:
        limit = clamp_int(args.limit, default=LIMIT_MAX, minimum=LIMIT_MIN, maximum=LIMIT_MAX)

    return asyncio.run(
        run_command(
            args.command,
            dry_run=args.dry_run,
            limit=limit,
            as_json=args.json,
            service=MirrorSyncService(cfg),
        )
    )


if __name__ == "__main__":
    sys.exit(main())
