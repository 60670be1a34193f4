from __future__ import annotations

import time
from typing import Callable, Optional

from . import config
from .error_codes import ErrorCode, VALIDATION_ERROR_CODES
from .errors import describe_exception
from .logging_utils import _scraper_event
from .models import PrayerTimeRecord
from .validation import validation_error

FetchFn = Callable[[str], Optional[PrayerTimeRecord]]


def compute_backoff_seconds(attempt_index: int, base_delay: Optional[float] = None) -> float:
    """Return the delay after failed attempt ``attempt_index`` (1-based).

    ``base * 2 ** (attempt - 1)``: 1s, 2s, 4s ... with the default base. The
    sequence is not capped here; ``validate_runtime_config`` keeps the largest
    configured delay under ``RETRY_MAX_BACKOFF_SECONDS``.
    """

    base = config.RETRY_BASE_DELAY_SECONDS if base_delay is None else base_delay
    return float(base * (2 ** max(0, attempt_index - 1)))


def max_backoff_seconds(max_attempts: int, base_delay: Optional[float] = None) -> float:
    """Largest delay ``with_retry`` sleeps for ``max_attempts`` attempts."""

    if max_attempts < 2:
        return 0.0
    return compute_backoff_seconds(max_attempts - 1, base_delay)


def with_retry(
    fetch_fn: FetchFn,
    zone_code: str,
    max_attempts: Optional[int] = None,
    *,
    base_delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    errors: Optional[list[str]] = None,
    backend: str = "",
) -> Optional[PrayerTimeRecord]:
    """Call ``fetch_fn(zone_code)`` until it returns a record that validates.

    Backend exceptions and validation failures count as failed attempts and
    never escape; ``None`` is returned once ``max_attempts`` are used up. Each
    failure message is appended to ``errors`` when a list is supplied.
    """

    attempts = max(1, config.FETCH_MAX_ATTEMPTS if max_attempts is None else max_attempts)
    code = zone_code.strip().upper()

    for attempt in range(1, attempts + 1):
        try:
            record = fetch_fn(code)
            error_code = validation_error(record, code)
            if error_code is None:
                _scraper_event(
                    "state",
                    phase="fetch_attempt",
                    kind="accepted",
                    zone=code,
                    backend=backend or None,
                    attempt=attempt,
                )
                return record
            message = f"Invalid or incomplete prayer time data ({error_code})"
            if error_code == ErrorCode.ZONE_MISMATCH and record is not None:
                message = f"Zone mismatch: expected {code}, got {record.zone_label!r}"
        except Exception as exc:  # noqa: BLE001
            error_code, message = describe_exception(exc)

        will_retry = attempt < attempts
        backoff = compute_backoff_seconds(attempt, base_delay) if will_retry else None
        _scraper_event(
            "validation" if error_code in VALIDATION_ERROR_CODES else "state",
            phase="fetch_retry",
            zone=code,
            backend=backend or None,
            attempt=attempt,
            max_attempts=attempts,
            error_code=error_code,
            error_message=message,
            will_retry=will_retry,
            backoff_seconds=backoff,
        )
        if errors is not None:
            errors.append(message)
        if backoff is not None:
            sleep(backoff)

    _scraper_event(
        "error",
        phase="fetch_retry",
        kind="exhausted",
        zone=code,
        backend=backend or None,
        max_attempts=attempts,
    )
    return None


__all__ = ["compute_backoff_seconds", "max_backoff_seconds", "with_retry", "FetchFn"]
