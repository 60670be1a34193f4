"""Batch scheduler: fan per-zone fetches out under a concurrency cap."""
from __future__ import annotations

import threading
import time
from typing import Callable, Iterable, Optional

from . import config
from .batch_executor import BatchExecutor
from .error_codes import ErrorCode
from .errors import describe_exception
from .logging_utils import _scraper_event
from .models import BatchSummary, ScrapeFailure, ScrapeOutcome, ScrapeSuccess
from .utils import log_line

UnitFn = Callable[[str], ScrapeOutcome]


def _guarded(unit: UnitFn) -> UnitFn:
    """Make sure a unit of work reports a failure instead of raising."""

    def run(zone_code: str) -> ScrapeOutcome:
        try:
            return unit(zone_code)
        except Exception as exc:  # noqa: BLE001
            error_code, message = describe_exception(exc)
            return ScrapeFailure(zone_code, message, error_code)

    return run


def _partition(
    outcomes: Iterable[ScrapeOutcome],
) -> tuple[list[ScrapeSuccess], list[ScrapeFailure]]:
    successes: list[ScrapeSuccess] = []
    failures: list[ScrapeFailure] = []
    for outcome in outcomes:
        if isinstance(outcome, ScrapeSuccess):
            successes.append(outcome)
        elif isinstance(outcome, ScrapeFailure):
            failures.append(outcome)
        else:
            raise TypeError(f"Unexpected scrape outcome {outcome!r}")
    return successes, failures


def _run_pass(
    zone_codes: list[str],
    unit: UnitFn,
    *,
    parallel: bool,
    concurrency: int,
    sequential_delay: float,
    cancel_event: Optional[threading.Event],
    sleep: Callable[[float], None],
    label: str,
) -> tuple[list[ScrapeOutcome], list[str]]:
    """Run one pass; returns outcomes and the codes never dispatched."""

    total = len(zone_codes)
    if parallel and concurrency > 1:
        executor = BatchExecutor(concurrency, cancel_event)
        try:
            outcomes, undispatched = executor.map(zone_codes, unit)
        finally:
            executor.shutdown()
        _scraper_event(
            "state",
            phase="batch_executor",
            kind="summary",
            batch_pass=label,
            peak_in_flight=executor.peak_in_flight,
            max_parallel=concurrency,
        )
        return outcomes, undispatched

    outcomes = []
    for index, zone_code in enumerate(zone_codes):
        if cancel_event is not None and cancel_event.is_set():
            return outcomes, zone_codes[index:]
        outcome = unit(zone_code)
        outcomes.append(outcome)
        mark = "✓" if isinstance(outcome, ScrapeSuccess) else "✗"
        log_line(f"{mark} [{index + 1}/{total}] {label} {zone_code}")
        if index < total - 1:
            sleep(sequential_delay)
    return outcomes, []


def scrape_all(
    zone_codes: Iterable[str],
    unit: UnitFn,
    *,
    concurrency: Optional[int] = None,
    retry_failed: bool = True,
    parallel: bool = True,
    cooldown_seconds: Optional[float] = None,
    sequential_delay_seconds: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> BatchSummary:
    """Fetch every zone once, optionally re-drive the failures once, and summarise.

    A mix of successes and failures is a normal result. Undispatched zones
    after cancellation are reported as ``cancelled`` failures.
    """

    codes: list[str] = []
    for raw in zone_codes:
        code = raw.strip().upper()
        if code and code not in codes:
            codes.append(code)

    limit = max(1, config.MAX_CONCURRENCY if concurrency is None else concurrency)
    cooldown = config.RETRY_COOLDOWN_SECONDS if cooldown_seconds is None else cooldown_seconds
    delay = (
        config.SEQUENTIAL_DELAY_SECONDS if sequential_delay_seconds is None else sequential_delay_seconds
    )
    is_parallel = parallel and limit > 1
    guarded = _guarded(unit)
    started = clock()

    log_line(f"=== Scraping {len(codes)} zones (parallel={is_parallel}, concurrency={limit}) ===")
    outcomes, undispatched = _run_pass(
        codes,
        guarded,
        parallel=is_parallel,
        concurrency=limit,
        sequential_delay=delay,
        cancel_event=cancel_event,
        sleep=sleep,
        label="scrape",
    )
    first_successes, first_failures = _partition(outcomes)
    successes = {item.zone_code: item for item in first_successes}
    failures = {item.zone_code: item for item in first_failures}
    cancelled = bool(undispatched)

    if retry_failed and failures and not cancelled:
        log_line(f"=== Retrying {len(failures)} failed zones ===")
        sleep(cooldown)
        retry_outcomes, undispatched = _run_pass(
            sorted(failures),
            guarded,
            parallel=is_parallel,
            concurrency=limit,
            sequential_delay=delay,
            cancel_event=cancel_event,
            sleep=sleep,
            label="retry",
        )
        cancelled = bool(undispatched)
        retry_successes, retry_failures = _partition(retry_outcomes)
        for item in retry_successes:
            failures.pop(item.zone_code, None)
            successes[item.zone_code] = ScrapeSuccess(item.zone_code, item.record, retried=True)
        for item in retry_failures:
            failures[item.zone_code] = item

    for zone_code in undispatched:
        if zone_code not in successes and zone_code not in failures:
            failures[zone_code] = ScrapeFailure(zone_code, "Batch cancelled before dispatch", ErrorCode.CANCELLED)

    summary = BatchSummary(
        total_zones=len(codes),
        successes=[successes[code] for code in sorted(successes)],
        failures=[failures[code] for code in sorted(failures)],
        duration_ms=(clock() - started) * 1000.0,
        parallel=is_parallel,
        concurrency=limit,
        cancelled=cancelled,
    )
    _scraper_event(
        "state",
        phase="batch",
        kind="summary",
        total=summary.total_zones,
        success=summary.success_count,
        errors=summary.error_count,
        retried=summary.retried_count,
        duration_ms=round(summary.duration_ms, 1),
        cancelled=cancelled,
    )
    return summary


__all__ = ["scrape_all", "UnitFn"]
