"""Field-level normalisation shared by the API and browser backends."""
from __future__ import annotations

import re

DHUHA_OFFSET_MINUTES = 15

_ENTITY_MAP: dict[str, str] = {
    "&#176;": "°",
    "&#8242;": "′",
    "&#8243;": "″",
    "&deg;": "°",
    "&prime;": "′",
    "&Prime;": "″",
}

_HH_MM = re.compile(r"^(\d{1,2}):(\d{2})")


def format_time(value: str | None) -> str:
    """Truncate ``HH:MM:SS`` to ``HH:MM``; anything else is returned stripped."""

    text = (value or "").strip()
    if text.count(":") >= 2:
        hours, minutes = text.split(":")[:2]
        return f"{hours}:{minutes}"
    return text


def derive_dhuha(syuruk: str) -> str:
    """Return syuruk plus fifteen minutes, carrying minutes into the hour.

    Dhuha always falls well before midnight so no day rollover is applied.
    An unparseable syuruk yields an empty string.
    """

    match = _HH_MM.match((syuruk or "").strip())
    if not match:
        return ""
    hours, minutes = int(match.group(1)), int(match.group(2))
    total = minutes + DHUHA_OFFSET_MINUTES
    hours += total // 60
    return f"{hours:02d}:{total % 60:02d}"


def decode_bearing(raw: str | None) -> str:
    """Decode the degree/prime entities e-solat emits in qibla bearings."""

    text = raw or ""
    for entity, glyph in _ENTITY_MAP.items():
        text = text.replace(entity, glyph)
    return text.strip()


def compose_zone_label(zone_code: str, bearing: str) -> str:
    code = zone_code.strip().upper()
    return f"{code} - {bearing}" if bearing else code


def bare_zone_code(zone_label: str | None) -> str:
    """Return the zone code in front of the first ``-`` of a label, uppercased."""

    label = (zone_label or "").strip()
    return label.split("-", 1)[0].strip().upper()


def clean_page_value(text: str | None) -> str:
    """Treat the page's placeholder values as absent."""

    value = (text or "").strip()
    if value in {"-", "00:00:00"}:
        return ""
    return value


__all__ = [
    "DHUHA_OFFSET_MINUTES",
    "format_time",
    "derive_dhuha",
    "decode_bearing",
    "compose_zone_label",
    "bare_zone_code",
    "clean_page_value",
]
