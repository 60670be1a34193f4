from __future__ import annotations

"""Extraction backends and the configured fallback chain.

``api`` and ``browser`` are the stable backend identifiers used in
``WAKTUSOLAT_BACKENDS`` and in log lines.
"""

import logging
from typing import Iterable, Optional, Protocol

from . import config
from .models import PrayerTimeRecord

LOGGER = logging.getLogger("waktusolat")

API = "api"
BROWSER = "browser"

ALL_BACKENDS = (API, BROWSER)

_API_ALIASES = {"api", "json", "esolat-api", "esolat_api"}
_BROWSER_ALIASES = {"browser", "selenium", "web", "page"}


class Backend(Protocol):
    """Anything that can fetch one zone's record; raises ``FetchError`` on failure."""

    name: str

    def fetch(self, zone_code: str) -> PrayerTimeRecord: ...


def normalize_backend(value: str | None) -> Optional[str]:
    """Return the canonical backend identifier, or ``None`` when unknown."""

    if not value:
        return None
    raw = value.strip().lower()
    if raw in _API_ALIASES:
        return API
    if raw in _BROWSER_ALIASES:
        return BROWSER
    return None


def resolve_backend_names(raw_names: Iterable[str]) -> list[str]:
    """Normalise a configured chain, dropping unknown and duplicate names."""

    resolved: list[str] = []
    for raw in raw_names:
        name = normalize_backend(raw)
        if name is None:
            LOGGER.warning("[SOURCES][WARN] Unknown backend %r; skipping.", raw)
            continue
        if name not in resolved:
            resolved.append(name)
    return resolved


def build_backend(name: str) -> Backend:
    if name == API:
        from .api_backend import ApiBackend

        return ApiBackend()
    if name == BROWSER:
        from .browser_backend import BrowserBackend

        return BrowserBackend()
    raise ValueError(f"Unknown backend {name!r}")


def build_backends(names: Optional[Iterable[str]] = None) -> list[Backend]:
    """Instantiate the fallback chain, fastest first as configured."""

    chain = resolve_backend_names(config.backend_names() if names is None else names)
    return [build_backend(name) for name in chain]


__all__ = [
    "API",
    "BROWSER",
    "ALL_BACKENDS",
    "Backend",
    "normalize_backend",
    "resolve_backend_names",
    "build_backend",
    "build_backends",
]
