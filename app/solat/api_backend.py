"""JSON API backend for the e-solat ``takwimsolat`` endpoint."""
from __future__ import annotations

from typing import Any, Optional

import requests

from . import config
from .date_utils import normalize_gregorian_date, normalize_hijri_date
from .error_codes import ErrorCode, classify_http_status
from .errors import FetchError
from .logging_utils import _scraper_event
from .models import PrayerTimeRecord
from .normalize import compose_zone_label, decode_bearing, derive_dhuha, format_time

# e-solat field name -> record field name
_API_TIME_FIELDS: dict[str, str] = {
    "imsak": "imsak",
    "fajr": "subuh",
    "syuruk": "syuruk",
    "dhuhr": "zohor",
    "asr": "asar",
    "maghrib": "maghrib",
    "isha": "isyak",
}


class ApiBackend:
    """Fetch one zone's schedule for today from the structured API."""

    name = "api"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[int] = None,
        session: Optional[Any] = None,
    ) -> None:
        self.base_url = base_url if base_url is not None else config.API_BASE_URL
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT_SECONDS
        self._session = session

    def _get_session(self) -> Any:
        if self._session is None:
            session = requests.Session()
            session.headers.update(config.COMMON_HEADERS)
            self._session = session
        return self._session

    def build_url(self, zone_code: str) -> str:
        return f"{self.base_url}{zone_code.strip().upper()}"

    def fetch(self, zone_code: str) -> PrayerTimeRecord:
        url = self.build_url(zone_code)
        try:
            response = self._get_session().get(url, timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise FetchError(ErrorCode.NETWORK, str(exc)) from exc
        except requests.RequestException as exc:
            raise FetchError(ErrorCode.INTERNAL, str(exc)) from exc

        status = response.status_code
        if not 200 <= int(status) < 300:
            raise FetchError(
                classify_http_status(int(status)),
                f"HTTP error! status: {status}",
                http_status=int(status),
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(ErrorCode.BAD_PAYLOAD, "Response body is not JSON") from exc

        record = parse_api_payload(payload, zone_code)
        _scraper_event(
            "api",
            phase="fetch",
            zone=zone_code,
            http_status=status,
            gregorian_date=record.gregorian_date,
        )
        return record


def parse_api_payload(payload: Any, zone_code: str) -> PrayerTimeRecord:
    """Normalise an e-solat ``today`` payload into a record.

    Raises ``FetchError`` with ``bad_payload`` when the status sentinel is not
    ``OK!`` or the day list is empty.
    """

    if not isinstance(payload, dict):
        raise FetchError(ErrorCode.BAD_PAYLOAD, "Invalid API response or no prayer time data")

    days = payload.get("prayerTime")
    if payload.get("status") != config.API_OK_STATUS or not isinstance(days, list) or not days:
        raise FetchError(ErrorCode.BAD_PAYLOAD, "Invalid API response or no prayer time data")

    day = days[0]
    if not isinstance(day, dict):
        raise FetchError(ErrorCode.BAD_PAYLOAD, "Malformed prayer time entry")

    bearing = decode_bearing(payload.get("bearing"))
    zone = str(payload.get("zone") or zone_code).strip().upper()

    times = {field: format_time(day.get(key)) for key, field in _API_TIME_FIELDS.items()}
    dhuha = format_time(day.get("dhuha")) or derive_dhuha(times["syuruk"])

    return PrayerTimeRecord(
        zone_label=compose_zone_label(zone, bearing),
        bearing=bearing,
        gregorian_date=normalize_gregorian_date(str(day.get("date") or "")),
        hijri_date=normalize_hijri_date(str(day.get("hijri") or "")),
        dhuha=dhuha,
        **times,
    )


__all__ = ["ApiBackend", "parse_api_payload"]
