from __future__ import annotations

import re
from datetime import datetime
from typing import Iterable, Optional

from hijridate import Gregorian

from . import config

_GREGORIAN_INPUT_FORMATS: Iterable[str] = (
    "%d/%m/%Y",
    "%Y-%m-%d",
    "%d-%m-%Y",
)

_ISO_HIJRI = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")

# e-solat always sends English month abbreviations ("05-Mar-2024"); %b would
# follow the process locale.
_API_DATE = re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{4})$")
_ENGLISH_MONTHS: dict[str, int] = {
    name: index
    for index, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}


def today_string(now: Optional[datetime] = None) -> str:
    """Return the current local date in the configured storage format.

    Every read and write that needs "today" goes through here so that the
    writer and the reader agree on one exact string.
    """

    current = now or datetime.now()
    return current.strftime(config.GREGORIAN_DATE_FORMAT)


def normalize_gregorian_date(value: str) -> str:
    """Rewrite a remote date string into the configured storage format.

    Values that match none of the known input formats are returned stripped
    but otherwise untouched.
    """

    candidate = (value or "").strip()
    if not candidate:
        return ""

    match = _API_DATE.match(candidate)
    if match:
        day, month_name, year = match.groups()
        month = _ENGLISH_MONTHS.get(month_name.lower())
        if month is None:
            return candidate
        try:
            return datetime(int(year), month, int(day)).strftime(config.GREGORIAN_DATE_FORMAT)
        except ValueError:
            return candidate

    for fmt in _GREGORIAN_INPUT_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).strftime(config.GREGORIAN_DATE_FORMAT)
        except ValueError:
            continue
    return candidate


def normalize_hijri_date(value: str) -> str:
    """Turn ``YYYY-mm-dd`` Hijri strings into ``dd/mm/YYYY``."""

    candidate = (value or "").strip()
    match = _ISO_HIJRI.match(candidate)
    if not match:
        return candidate
    year, month, day = match.groups()
    return f"{int(day):02d}/{int(month):02d}/{year}"


def hijri_string(now: Optional[datetime] = None) -> str:
    """Return the Hijri date for the local day as ``dd/mm/YYYY``."""

    current = now or datetime.now()
    hijri = Gregorian(current.year, current.month, current.day).to_hijri()
    return f"{int(hijri.day):02d}/{int(hijri.month):02d}/{int(hijri.year)}"


__all__ = ["today_string", "normalize_gregorian_date", "normalize_hijri_date", "hijri_string"]
