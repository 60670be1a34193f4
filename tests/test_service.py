from __future__ import annotations

import sqlite3

import pytest

from app.solat import config, db
from app.solat.api_backend import ApiBackend
from app.solat.date_utils import today_string
from app.solat.error_codes import ErrorCode
from app.solat.errors import FetchError, StateNotFoundError
from app.solat.models import PrayerTimeRecord, ScrapeFailure, ScrapeSuccess, ZoneEntry
from app.solat.service import PrayerTimeService
from tests.test_api_backend import _FakeResponse, _FakeSession, _payload
from tests.test_store import _count_rows

CATALOG = [
    ZoneEntry("JHR01", "Johor", "Pulau Aur dan Pulau Pemanggil"),
    ZoneEntry("WLY01", "Wilayah Persekutuan", "Kuala Lumpur, Putrajaya"),
    ZoneEntry("WLY02", "Wilayah Persekutuan", "Labuan"),
]


def _record(zone: str) -> PrayerTimeRecord:
    return PrayerTimeRecord(
        zone_label=f"{zone} - 292° 52′ 18″",
        bearing="292° 52′ 18″",
        gregorian_date=today_string(),
        hijri_date="24/08/1445",
        imsak="05:58",
        subuh="06:08",
        syuruk="07:16",
        dhuha="07:31",
        zohor="13:22",
        asar="16:26",
        maghrib="19:24",
        isyak="20:33",
    )


class _FakeBackend:
    def __init__(self, name: str, failing: set[str] | None = None) -> None:
        self.name = name
        self.failing = failing or set()
        self.calls: list[str] = []

    def fetch(self, zone_code: str) -> PrayerTimeRecord:
        self.calls.append(zone_code)
        if zone_code in self.failing or "*" in self.failing:
            raise FetchError(ErrorCode.NETWORK, f"{self.name} unreachable")
        return _record(zone_code)


def _service(*backends: _FakeBackend, catalog: list[ZoneEntry] | None = None) -> PrayerTimeService:
    db.initialize_schema()
    return PrayerTimeService(
        backends=list(backends),
        max_attempts=2,
        retry_base_delay=0.0,
        sleep=lambda _seconds: None,
        catalog_loader=lambda: list(CATALOG if catalog is None else catalog),
    )


def test_second_lookup_is_served_from_store() -> None:
    backend = _FakeBackend("api")
    service = _service(backend)

    first = service.get_or_fetch("wly01")
    second = service.get_or_fetch("WLY01")

    assert first is not None and second is not None
    assert backend.calls == ["WLY01"]
    assert second.subuh == "06:08"
    assert second.id == first.id


def test_default_zone_used_when_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "DEFAULT_ZONE", "SGR01")
    backend = _FakeBackend("api")
    record = _service(backend).get_or_fetch(None)
    assert record is not None
    assert backend.calls == ["SGR01"]


def test_falls_back_to_next_backend() -> None:
    api = _FakeBackend("api", failing={"*"})
    browser = _FakeBackend("browser")
    service = _service(api, browser)

    record = service.get_or_fetch("WLY01")

    assert record is not None
    assert api.calls == ["WLY01", "WLY01"]
    assert browser.calls == ["WLY01"]


def test_all_backends_failing_returns_none() -> None:
    service = _service(_FakeBackend("api", failing={"*"}), _FakeBackend("browser", failing={"*"}))
    assert service.get_or_fetch("WLY01") is None
    assert service.store.find_today("WLY01") is None


def test_force_refresh_always_fetches() -> None:
    backend = _FakeBackend("api")
    service = _service(backend)

    service.get_or_fetch("WLY01")
    refreshed = service.force_refresh("WLY01")

    assert refreshed is not None
    assert backend.calls == ["WLY01", "WLY01"]
    assert _count_rows("WLY01", today_string()) == 1


def test_refresh_outcome_reports_failures() -> None:
    service = _service(_FakeBackend("api", failing={"WLY02"}))

    ok = service.refresh_outcome("wly01")
    failed = service.refresh_outcome("WLY02")

    assert isinstance(ok, ScrapeSuccess)
    assert isinstance(failed, ScrapeFailure)
    assert failed.error_code == ErrorCode.RETRIES_EXHAUSTED
    assert failed.error_message == "api unreachable"


def test_refresh_outcome_reports_persistence_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    service = _service(_FakeBackend("api"))

    def _locked(*_args, **_kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(service.store, "upsert", _locked)
    outcome = service.refresh_outcome("WLY01")

    assert isinstance(outcome, ScrapeFailure)
    assert outcome.error_code == ErrorCode.PERSISTENCE


def test_history_uses_default_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "HISTORY_DEFAULT_LIMIT", 1)
    service = _service(_FakeBackend("api"))
    service.get_or_fetch("WLY01")
    assert len(service.history("WLY01")) == 1
    assert service.history("WLY02") == []


def test_get_zones_loads_catalogue_once() -> None:
    loads: list[int] = []

    def loader() -> list[ZoneEntry]:
        loads.append(1)
        return list(CATALOG)

    db.initialize_schema()
    service = PrayerTimeService(backends=[], catalog_loader=loader)

    groups = service.get_zones()
    service.get_zones()

    assert [group.state for group in groups] == ["Johor", "Wilayah Persekutuan"]
    assert loads == [1]


def test_refresh_zones_keeps_existing_on_empty_load() -> None:
    service = _service(_FakeBackend("api"))
    service.refresh_zones()
    service._catalog_loader = lambda: []

    groups = service.refresh_zones()

    assert sum(len(group.zones) for group in groups) == 3


def test_scrape_state_runs_only_that_state(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "MAX_CONCURRENCY", 3)
    backend = _FakeBackend("api")
    service = _service(backend)

    summary = service.scrape_state("wilayah persekutuan")

    assert sorted(backend.calls) == ["WLY01", "WLY02"]
    assert summary.success_count == 2
    assert service.store.find_today("WLY02") is not None


def test_scrape_state_unknown_raises() -> None:
    service = _service(_FakeBackend("api"))
    with pytest.raises(StateNotFoundError):
        service.scrape_state("Atlantis")


def test_scrape_all_caps_concurrency(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "MAX_CONCURRENCY", 2)
    service = _service(_FakeBackend("api", failing={"JHR01"}))

    summary = service.scrape_all(concurrency=10)

    assert summary.concurrency == 2
    assert summary.total_zones == 3
    assert summary.success_count == 2
    assert [item.zone_code for item in summary.failures] == ["JHR01"]


def test_dateless_api_payload_falls_back_to_next_backend() -> None:
    payload = _payload()
    del payload["prayerTime"][0]["date"]
    session = _FakeSession(_FakeResponse(200, payload))
    api = ApiBackend("https://example.test/?zone=", session=session)
    browser = _FakeBackend("browser")
    service = _service(api, browser)

    record = service.get_or_fetch("WLY01")

    assert record is not None
    assert record.gregorian_date == today_string()
    assert len(session.calls) == 2
    assert browser.calls == ["WLY01"]


def test_dateless_record_is_a_fetch_failure_not_persistence() -> None:
    class _Dateless(_FakeBackend):
        def fetch(self, zone_code: str) -> PrayerTimeRecord:
            self.calls.append(zone_code)
            record = _record(zone_code)
            record.gregorian_date = ""
            return record

    service = _service(_Dateless("api"))

    assert service.get_or_fetch("WLY01") is None
    outcome = service.refresh_outcome("WLY01")
    assert isinstance(outcome, ScrapeFailure)
    assert outcome.error_code == ErrorCode.RETRIES_EXHAUSTED
    assert "missing_date" in outcome.error_message
