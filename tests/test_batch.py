from __future__ import annotations

import threading
import time

import pytest

from app.solat import batch
from app.solat.error_codes import ErrorCode
from app.solat.models import PrayerTimeRecord, ScrapeFailure, ScrapeOutcome, ScrapeSuccess


def _success(zone: str) -> ScrapeSuccess:
    return ScrapeSuccess(zone, PrayerTimeRecord(zone_label=zone, gregorian_date="05/03/2024"))


@pytest.fixture
def no_sleep() -> list[float]:
    return []


def test_concurrency_cap_is_respected(no_sleep: list[float]) -> None:
    lock = threading.Lock()
    active = {"now": 0, "max": 0}

    def unit(zone: str) -> ScrapeOutcome:
        with lock:
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
        time.sleep(0.02)
        with lock:
            active["now"] -= 1
        return _success(zone)

    zones = [f"ZON{i:02d}" for i in range(10)]
    summary = batch.scrape_all(zones, unit, concurrency=3, sleep=no_sleep.append)

    assert active["max"] <= 3
    assert summary.total_zones == 10
    assert summary.success_count == 10
    assert summary.error_count == 0
    assert summary.parallel is True
    assert summary.concurrency == 3


def test_failed_zones_are_retried_once(no_sleep: list[float]) -> None:
    calls: dict[str, int] = {}

    def unit(zone: str) -> ScrapeOutcome:
        calls[zone] = calls.get(zone, 0) + 1
        if zone in {"AAA01", "BBB01"} and calls[zone] == 1:
            return ScrapeFailure(zone, "Failed to scrape", ErrorCode.RETRIES_EXHAUSTED)
        return _success(zone)

    summary = batch.scrape_all(
        ["AAA01", "BBB01", "CCC01"], unit, concurrency=2, cooldown_seconds=2.0, sleep=no_sleep.append
    )

    assert summary.success_count == 3
    assert summary.error_count == 0
    assert summary.retried_count == 2
    assert {item.zone_code for item in summary.successes if item.retried} == {"AAA01", "BBB01"}
    assert no_sleep == [2.0]
    assert calls == {"AAA01": 2, "BBB01": 2, "CCC01": 1}


def test_retry_disabled_reports_failures(no_sleep: list[float]) -> None:
    def unit(zone: str) -> ScrapeOutcome:
        return ScrapeFailure(zone, "Failed to scrape", ErrorCode.RETRIES_EXHAUSTED)

    summary = batch.scrape_all(["AAA01"], unit, concurrency=2, retry_failed=False, sleep=no_sleep.append)

    assert summary.error_count == 1
    assert summary.failures[0].error_message == "Failed to scrape"
    assert no_sleep == []


def test_unit_exceptions_become_failures(no_sleep: list[float]) -> None:
    def unit(zone: str) -> ScrapeOutcome:
        raise RuntimeError(f"boom {zone}")

    summary = batch.scrape_all(["AAA01", "BBB01"], unit, concurrency=2, retry_failed=False, sleep=no_sleep.append)

    assert summary.success_count == 0
    assert [item.error_code for item in summary.failures] == [ErrorCode.INTERNAL, ErrorCode.INTERNAL]
    assert summary.failures[0].error_message == "RuntimeError: boom AAA01"


def test_sequential_mode_sleeps_between_zones(no_sleep: list[float]) -> None:
    order: list[str] = []

    def unit(zone: str) -> ScrapeOutcome:
        order.append(zone)
        return _success(zone)

    summary = batch.scrape_all(
        ["c", "a", "b", "A"],
        unit,
        parallel=False,
        sequential_delay_seconds=0.5,
        sleep=no_sleep.append,
    )

    assert order == ["C", "A", "B"]
    assert no_sleep == [0.5, 0.5]
    assert summary.parallel is False
    assert summary.total_zones == 3


def test_concurrency_of_one_runs_sequentially(no_sleep: list[float]) -> None:
    summary = batch.scrape_all(["AAA01", "BBB01"], _success, concurrency=1, sleep=no_sleep.append)
    assert summary.parallel is False
    assert summary.success_count == 2


def test_cancel_reports_undispatched_zones(no_sleep: list[float]) -> None:
    cancel = threading.Event()

    def unit(zone: str) -> ScrapeOutcome:
        cancel.set()
        return _success(zone)

    summary = batch.scrape_all(
        ["AAA01", "BBB01", "CCC01"],
        unit,
        parallel=False,
        cancel_event=cancel,
        sleep=no_sleep.append,
    )

    assert summary.cancelled is True
    assert [item.zone_code for item in summary.successes] == ["AAA01"]
    assert [item.zone_code for item in summary.failures] == ["BBB01", "CCC01"]
    assert {item.error_code for item in summary.failures} == {ErrorCode.CANCELLED}


def test_summary_to_dict_shape(no_sleep: list[float]) -> None:
    summary = batch.scrape_all(["AAA01"], _success, concurrency=1, sleep=no_sleep.append)
    payload = summary.to_dict()
    assert payload["total_zones"] == 1
    assert payload["success_count"] == 1
    assert payload["error_count"] == 0
    assert payload["retried"] == 0
    assert payload["results"] == [
        {"zone": "AAA01", "success": True, "retried": False, "gregorian_date": "05/03/2024"}
    ]
    assert payload["errors"] == []
