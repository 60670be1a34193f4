from __future__ import annotations

"""Command line entry point for fetching and batch-scraping prayer times."""

import argparse
import json
from typing import Any, Optional, Sequence

from . import config, db
from .config_validation import validate_runtime_config
from .errors import StateNotFoundError
from .healthcheck import run_health_checks
from .models import BatchSummary, PrayerTimeRecord
from .service import SOURCE_UNAVAILABLE_MESSAGE, PrayerTimeService, build_service
from .utils import ensure_dirs


def _add_batch_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Scrape one zone at a time with a courtesy delay.",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help=f"Maximum in-flight fetches (default {config.MAX_CONCURRENCY}).",
    )
    parser.add_argument(
        "--no-retry-failed",
        action="store_true",
        help="Skip the second pass over failed zones.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch and store e-solat prayer times.")
    sub = parser.add_subparsers(dest="command", required=True)

    today = sub.add_parser("today", help="Show today's times, fetching on a cache miss.")
    today.add_argument("zone", nargs="?", default=None)

    refresh = sub.add_parser("refresh", help="Re-fetch and store one zone.")
    refresh.add_argument("zone")

    history = sub.add_parser("history", help="Show recent stored records for a zone.")
    history.add_argument("zone")
    history.add_argument("--limit", type=int, default=config.HISTORY_DEFAULT_LIMIT)

    zones = sub.add_parser("zones", help="List the zone catalogue grouped by state.")
    zones.add_argument("--refresh", action="store_true", help="Reload the catalogue first.")

    scrape_all = sub.add_parser("scrape-all", help="Scrape every zone.")
    _add_batch_options(scrape_all)

    scrape_state = sub.add_parser("scrape-state", help="Scrape the zones of one state.")
    scrape_state.add_argument("state")
    _add_batch_options(scrape_state)

    sub.add_parser("health", help="Run configuration and database checks.")
    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _print_record(record: PrayerTimeRecord) -> None:
    print(f"{record.zone_label}  {record.gregorian_date}  ({record.hijri_date})")
    for name, value in record.times().items():
        print(f"  {name:<8} {value or '-'}")


def _print_summary(summary: BatchSummary) -> None:
    seconds = summary.duration_ms / 1000.0
    print(
        f"Completed in {seconds:.1f}s. Total: {summary.total_zones}, "
        f"Success: {summary.success_count}, Errors: {summary.error_count}, "
        f"Retried: {summary.retried_count}"
    )
    for failure in summary.failures:
        print(f"  {failure.zone_code}: {failure.error_message}")


def main(argv: Sequence[str] | None = None, service: Optional[PrayerTimeService] = None) -> int:
    """Entry point for the waktu solat CLI."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.command == "health":
        result = run_health_checks(entrypoint="cli")
        _print_json({"ok": result.ok, "checks": result.checks})
        return 0 if result.ok else 1

    try:
        validate_runtime_config("cli")
    except ValueError as exc:
        parser.error(str(exc))

    ensure_dirs()
    db.initialize_schema()
    svc = service or build_service()

    if args.command == "today":
        record = svc.get_or_fetch(args.zone)
        if record is None:
            print(SOURCE_UNAVAILABLE_MESSAGE)
            return 1
        _print_record(record)
        return 0

    if args.command == "refresh":
        record = svc.force_refresh(args.zone)
        if record is None:
            print(SOURCE_UNAVAILABLE_MESSAGE)
            return 1
        _print_record(record)
        return 0

    if args.command == "history":
        records = svc.history(args.zone, args.limit)
        if not records:
            print(f"No stored records for zone {args.zone.upper()}")
        for record in records:
            _print_record(record)
        return 0

    if args.command == "zones":
        groups = svc.refresh_zones() if args.refresh else svc.get_zones()
        for group in groups:
            print(group.state)
            for code, description in group.zones:
                print(f"  {code}  {description}")
        return 0

    batch_kwargs = {
        "parallel": not args.sequential,
        "concurrency": args.concurrency,
        "retry_failed": not args.no_retry_failed,
    }
    if args.command == "scrape-all":
        summary = svc.scrape_all(**batch_kwargs)
    else:
        try:
            summary = svc.scrape_state(args.state, **batch_kwargs)
        except StateNotFoundError as exc:
            print(str(exc))
            return 1
    _print_summary(summary)
    return 0 if summary.error_count == 0 else 2


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
