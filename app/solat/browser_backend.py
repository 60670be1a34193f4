"""Browser automation backend; slower and page-structure dependent."""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from selenium.common.exceptions import (
    NoSuchElementException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.remote.webdriver import WebDriver

from . import config
from .date_utils import hijri_string, today_string
from .error_codes import ErrorCode
from .errors import FetchError
from .logging_utils import _scraper_event
from .models import PrayerTimeRecord
from .normalize import derive_dhuha, format_time
from .selenium_client import (
    DriverFactory,
    browser_session,
    get_text_by_id_safe,
    load_page,
    select_zone,
    wait_for_prayer_times,
)

# record field -> element id on the page
PAGE_FIELD_IDS: dict[str, str] = {
    "imsak": "timsak",
    "subuh": "tsubuh",
    "syuruk": "tsyuruk",
    "dhuha": "tdhuha",
    "zohor": "tzohor",
    "asar": "tasar",
    "maghrib": "tmagrib",
    "isyak": "tisyak",
}


class BrowserBackend:
    name = "browser"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        driver_factory: Optional[DriverFactory] = None,
        settle_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        poll_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.base_url = base_url if base_url is not None else config.BROWSER_BASE_URL
        self.driver_factory = driver_factory
        self.settle_seconds = (
            settle_seconds if settle_seconds is not None else config.PAGE_SETTLE_SECONDS
        )
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else config.PAGE_TIMEOUT_SECONDS
        )
        self.poll_seconds = poll_seconds if poll_seconds is not None else config.RENDER_POLL_SECONDS
        self._clock = clock

    def fetch(self, zone_code: str) -> PrayerTimeRecord:
        code = zone_code.strip().upper()
        with browser_session(self.driver_factory) as driver:
            try:
                load_page(driver, self.base_url, self.settle_seconds)
                select_zone(driver, code, self.settle_seconds)
                wait_for_prayer_times(driver, self.timeout_seconds, self.poll_seconds)
            except TimeoutException as exc:
                raise FetchError(ErrorCode.PAGE_TIMEOUT, f"Prayer times did not render for {code}") from exc
            except NoSuchElementException as exc:
                raise FetchError(ErrorCode.SITE_STRUCTURE, f"Zone selector missing or no option {code}") from exc
            except WebDriverException as exc:
                raise FetchError(ErrorCode.NETWORK, exc.msg or str(exc)) from exc

            record = self.extract(driver)

        _scraper_event(
            "browser",
            phase="fetch",
            zone=code,
            zone_label=record.zone_label,
            gregorian_date=record.gregorian_date,
        )
        return record

    def extract(self, driver: WebDriver) -> PrayerTimeRecord:
        """Read the rendered timetable into a record stamped with today's dates."""

        now = self._clock()
        times = {
            field: format_time(get_text_by_id_safe(driver, element_id))
            for field, element_id in PAGE_FIELD_IDS.items()
        }
        if not times["dhuha"]:
            times["dhuha"] = derive_dhuha(times["syuruk"])

        return PrayerTimeRecord(
            zone_label=get_text_by_id_safe(driver, "czone"),
            bearing=get_text_by_id_safe(driver, "cbearing"),
            gregorian_date=today_string(now),
            hijri_date=hijri_string(now),
            **times,
        )


__all__ = ["BrowserBackend", "PAGE_FIELD_IDS"]
