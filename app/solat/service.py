"""Orchestrator: cache check, backend fallback, validation and upsert."""
from __future__ import annotations

import sqlite3
import threading
import time
from typing import Callable, Optional, Sequence

from . import batch, config
from .error_codes import ErrorCode
from .errors import StateNotFoundError
from .logging_utils import _scraper_event
from .models import (
    BatchSummary,
    PrayerTimeRecord,
    ScrapeFailure,
    ScrapeOutcome,
    ScrapeSuccess,
    ZoneEntry,
    ZoneGroup,
)
from .retry_policy import with_retry
from .selenium_client import DriverFactory
from .sources import Backend, build_backends
from .store import PrayerTimeStore, ZoneStore
from .utils import log_line
from .zones import group_zones, load_zone_catalog

SOURCE_UNAVAILABLE_MESSAGE = "Prayer time source unavailable, please try again later."


class PrayerTimeService:
    """Entry point used by the HTTP handlers and the CLI."""

    def __init__(
        self,
        *,
        store: Optional[PrayerTimeStore] = None,
        zone_store: Optional[ZoneStore] = None,
        backends: Optional[Sequence[Backend]] = None,
        max_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        catalog_loader: Callable[[], list[ZoneEntry]] = load_zone_catalog,
    ) -> None:
        self.store = store or PrayerTimeStore()
        self.zone_store = zone_store or ZoneStore()
        self.backends: list[Backend] = list(backends) if backends is not None else build_backends()
        self.max_attempts = max_attempts
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep
        self._catalog_loader = catalog_loader
        self._catalog_lock = threading.Lock()

    # -- fetch path -----------------------------------------------------

    def _fetch(self, zone_code: str, errors: Optional[list[str]] = None) -> Optional[PrayerTimeRecord]:
        """Walk the backend chain; each backend gets its own retry budget."""

        for backend in self.backends:
            name = getattr(backend, "name", type(backend).__name__)
            record = with_retry(
                backend.fetch,
                zone_code,
                self.max_attempts,
                base_delay=self.retry_base_delay,
                sleep=self._sleep,
                errors=errors,
                backend=name,
            )
            if record is not None:
                return record
            _scraper_event("state", phase="fallback", zone=zone_code, failed_backend=name)
        return None

    def get_or_fetch(self, zone_code: Optional[str] = None) -> Optional[PrayerTimeRecord]:
        """Return today's record from the store, fetching and storing it on a miss."""

        code = (zone_code or config.DEFAULT_ZONE).strip().upper()
        cached = self.store.find_today(code)
        if cached is not None:
            log_line(f"✓ Found cached data for zone {code}")
            return cached

        log_line(f"No cached data. Scraping for zone {code}...")
        record = self._fetch(code)
        if record is None:
            log_line(f"✗ Failed to scrape data for zone {code}")
            return None

        self.store.upsert(record, code)
        log_line(f"✓ Successfully scraped and saved data for zone {code}")
        return record

    def force_refresh(self, zone_code: str) -> Optional[PrayerTimeRecord]:
        """Always fetch, then upsert on success."""

        code = zone_code.strip().upper()
        record = self._fetch(code)
        if record is None:
            log_line(f"✗ Failed to refresh data for zone {code}")
            return None
        self.store.upsert(record, code)
        log_line(f"✓ Refreshed and saved data for zone {code}")
        return record

    def refresh_outcome(self, zone_code: str) -> ScrapeOutcome:
        """Force-refresh one zone and report it as a batch outcome; never raises."""

        code = zone_code.strip().upper()
        errors: list[str] = []
        record = self._fetch(code, errors)
        if record is None:
            message = errors[-1] if errors else "Failed to scrape"
            return ScrapeFailure(code, message, ErrorCode.RETRIES_EXHAUSTED)
        try:
            self.store.upsert(record, code)
        except (sqlite3.Error, ValueError) as exc:
            _scraper_event("error", phase="upsert", zone=code, error=str(exc))
            return ScrapeFailure(code, f"Failed to save: {exc}", ErrorCode.PERSISTENCE)
        return ScrapeSuccess(code, record)

    def history(self, zone_code: str, limit: Optional[int] = None) -> list[PrayerTimeRecord]:
        size = config.HISTORY_DEFAULT_LIMIT if limit is None else limit
        return self.store.find_history(zone_code, size)

    # -- zone catalogue -------------------------------------------------

    def refresh_zones(self) -> list[ZoneGroup]:
        """Replace the catalogue wholesale and return it regrouped."""

        with self._catalog_lock:
            entries = self._catalog_loader()
            if not entries:
                _scraper_event("error", phase="zone_catalog", error="empty_catalog")
                return group_zones(self.zone_store.list_zones())
            self.zone_store.replace_all(entries)
        return group_zones(self.zone_store.list_zones())

    def all_zones(self) -> list[ZoneEntry]:
        """Catalogue entries, refreshing first when the table reads empty."""

        zones = self.zone_store.list_zones()
        if not zones:
            log_line("No zones in database. Loading zone catalogue...")
            self.refresh_zones()
            zones = self.zone_store.list_zones()
        return zones

    def get_zones(self) -> list[ZoneGroup]:
        return group_zones(self.all_zones())

    # -- batches --------------------------------------------------------

    def scrape_all(
        self,
        *,
        parallel: bool = True,
        concurrency: Optional[int] = None,
        retry_failed: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchSummary:
        codes = [zone.code for zone in self.all_zones()]
        return self._scrape_codes(codes, parallel, concurrency, retry_failed, cancel_event)

    def scrape_state(
        self,
        state: str,
        *,
        parallel: bool = True,
        concurrency: Optional[int] = None,
        retry_failed: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchSummary:
        """Scrape the zones of one state; raises ``StateNotFoundError`` if unknown."""

        self.all_zones()
        zones = self.zone_store.zones_for_state(state)
        if not zones:
            raise StateNotFoundError(state)
        codes = [zone.code for zone in zones]
        return self._scrape_codes(codes, parallel, concurrency, retry_failed, cancel_event)

    def _scrape_codes(
        self,
        codes: list[str],
        parallel: bool,
        concurrency: Optional[int],
        retry_failed: bool,
        cancel_event: Optional[threading.Event],
    ) -> BatchSummary:
        limit = config.MAX_CONCURRENCY if concurrency is None else concurrency
        return batch.scrape_all(
            codes,
            self.refresh_outcome,
            concurrency=min(max(1, limit), max(1, config.MAX_CONCURRENCY)),
            retry_failed=retry_failed,
            parallel=parallel,
            cancel_event=cancel_event,
            sleep=self._sleep,
        )


def build_service(driver_factory: Optional[DriverFactory] = None) -> PrayerTimeService:
    """Return a service wired from the current configuration."""

    return PrayerTimeService(catalog_loader=lambda: load_zone_catalog(driver_factory))


__all__ = ["PrayerTimeService", "build_service", "SOURCE_UNAVAILABLE_MESSAGE"]
