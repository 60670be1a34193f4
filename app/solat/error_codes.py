from __future__ import annotations

"""Error code taxonomy for fetch and batch failures.

Codes appear in structured logs and in batch summaries so that a failed zone
can be explained without reading the log file. Keep them stable.
"""


class ErrorCode:
    NETWORK = "network_error"
    HTTP_4XX = "http_4xx"
    HTTP_5XX = "http_5xx"
    RATE_LIMITED = "rate_limited"
    BAD_PAYLOAD = "bad_payload"
    PAGE_TIMEOUT = "page_timeout"
    SITE_STRUCTURE = "site_structure_changed"
    ZONE_MISMATCH = "zone_mismatch"
    INCOMPLETE_TIMES = "incomplete_times"
    MISSING_DATE = "missing_date"
    RETRIES_EXHAUSTED = "retries_exhausted"
    PERSISTENCE = "persistence_error"
    CANCELLED = "cancelled"
    INTERNAL = "internal_error"


# Source-data problems, logged apart from transport failures.
VALIDATION_ERROR_CODES = frozenset(
    {ErrorCode.ZONE_MISMATCH, ErrorCode.INCOMPLETE_TIMES, ErrorCode.MISSING_DATE}
)


def classify_http_status(status: int | None) -> str:
    if status is None:
        return ErrorCode.INTERNAL
    if status == 429:
        return ErrorCode.RATE_LIMITED
    if 400 <= status < 500:
        return ErrorCode.HTTP_4XX
    if status >= 500:
        return ErrorCode.HTTP_5XX
    return ErrorCode.INTERNAL


__all__ = ["ErrorCode", "VALIDATION_ERROR_CODES", "classify_http_status"]
