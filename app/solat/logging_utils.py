from __future__ import annotations

import logging
from typing import Any

from .utils import log_line

# Event labels that describe a failed fetch, batch or check.
_WARNING_LABELS = frozenset({"error", "validation"})


def _scraper_event(label: str = "", *, phase: str | None = None, **fields: Any) -> None:
    """Emit one structured line: ``[SOLAT][LABEL][ZONE] k=v, ...``.

    ``phase`` stands in for a missing label and is otherwise kept as a field.
    A ``zone`` field moves into the prefix so a zone's history can be
    grepped. ``error`` and ``validation`` events are logged at WARNING.
    """

    try:
        tag = (label or phase or "event").upper()
        if phase and label:
            fields.setdefault("phase", phase)
        zone = fields.pop("zone", None)
        prefix = f"[SOLAT][{tag}]" + (f"[{str(zone).upper()}]" if zone else "")
        payload = ", ".join(f"{key}={value!r}" for key, value in sorted(fields.items()) if value is not None)
        level = logging.WARNING if label in _WARNING_LABELS else logging.INFO
        log_line(f"{prefix} {payload}".rstrip(), level)
    except Exception:  # noqa: BLE001
        return


__all__ = ["_scraper_event"]
