from __future__ import annotations

import re
from typing import Optional

from .error_codes import ErrorCode
from .models import TIME_FIELDS, PrayerTimeRecord

TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")
# Cached rows may lack optional times but never these.
MINIMUM_FIELDS: tuple[str, ...] = ("subuh", "zohor", "asar")


def validation_error(record: Optional[PrayerTimeRecord], zone_code: str) -> Optional[str]:
    """Return the error code that rejects ``record`` for ``zone_code``, if any.

    This is the strict gate applied to freshly fetched records: the label
    must name the requested zone, the Gregorian date must be present and all
    eight times must be ``HH:MM``.
    """

    if record is None:
        return ErrorCode.INCOMPLETE_TIMES
    if zone_code.strip().upper() not in (record.zone_label or "").upper():
        return ErrorCode.ZONE_MISMATCH
    if not (record.gregorian_date or "").strip():
        return ErrorCode.MISSING_DATE
    for name in TIME_FIELDS:
        if not TIME_PATTERN.match(getattr(record, name) or ""):
            return ErrorCode.INCOMPLETE_TIMES
    return None


__all__ = ["TIME_PATTERN", "MINIMUM_FIELDS", "validation_error"]
