from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest
from selenium.common.exceptions import NoSuchElementException, TimeoutException, WebDriverException

from app.solat import browser_backend, selenium_client
from app.solat.browser_backend import BrowserBackend
from app.solat.error_codes import ErrorCode
from app.solat.errors import FetchError

PAGE_VALUES = {
    "czone": "WLY01",
    "cbearing": "292° 52′ 18″",
    "timsak": "05:58:00",
    "tsubuh": "06:08:00",
    "tsyuruk": "07:16:00",
    "tdhuha": "-",
    "tzohor": "13:22:00",
    "tasar": "16:26:00",
    "tmagrib": "19:24:00",
    "tisyak": "20:33:00",
}


class _FakeElement:
    def __init__(self, text: str) -> None:
        self.text = text


class _FakeDriver:
    def __init__(self, values: dict[str, str] | None = None) -> None:
        self.values = dict(PAGE_VALUES if values is None else values)
        self.quit_calls = 0

    def find_element(self, by: str, value: str) -> _FakeElement:
        if value not in self.values:
            raise NoSuchElementException(value)
        return _FakeElement(self.values[value])

    def find_elements(self, by: str, value: str) -> list[_FakeElement]:
        return [_FakeElement(text) for key, text in self.values.items() if key.startswith("t")]

    def quit(self) -> None:
        self.quit_calls += 1


@pytest.fixture
def page_steps(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, Any]]:
    steps: list[tuple[str, Any]] = []
    monkeypatch.setattr(browser_backend, "load_page", lambda driver, url, settle: steps.append(("load", url)))
    monkeypatch.setattr(
        browser_backend, "select_zone", lambda driver, code, settle: steps.append(("select", code))
    )
    monkeypatch.setattr(
        browser_backend,
        "wait_for_prayer_times",
        lambda driver, timeout, poll: steps.append(("wait", timeout)),
    )
    return steps


def _backend(driver: _FakeDriver) -> BrowserBackend:
    return BrowserBackend(
        "https://example.test/",
        driver_factory=lambda: driver,
        settle_seconds=0,
        timeout_seconds=5,
        poll_seconds=0.01,
        clock=lambda: datetime(2024, 3, 5, 9, 0),
    )


def test_fetch_reads_rendered_page(page_steps: list[tuple[str, Any]]) -> None:
    driver = _FakeDriver()
    record = _backend(driver).fetch("wly01")

    assert page_steps == [("load", "https://example.test/"), ("select", "WLY01"), ("wait", 5)]
    assert record.zone_label == "WLY01"
    assert record.bearing == "292° 52′ 18″"
    assert record.subuh == "06:08"
    assert record.dhuha == "07:31"
    assert record.gregorian_date == "05/03/2024"
    assert record.hijri_date.endswith("/1445")
    assert driver.quit_calls == 1


@pytest.mark.parametrize(
    "exc, code",
    [
        (TimeoutException("slow"), ErrorCode.PAGE_TIMEOUT),
        (NoSuchElementException("inputzone"), ErrorCode.SITE_STRUCTURE),
        (WebDriverException("net::ERR_NAME_NOT_RESOLVED"), ErrorCode.NETWORK),
    ],
)
def test_fetch_maps_driver_errors_and_quits(
    exc: Exception, code: str, page_steps: list[tuple[str, Any]], monkeypatch: pytest.MonkeyPatch
) -> None:
    def _raise(*_args: Any) -> None:
        raise exc

    monkeypatch.setattr(browser_backend, "wait_for_prayer_times", _raise)
    driver = _FakeDriver()

    with pytest.raises(FetchError) as excinfo:
        _backend(driver).fetch("WLY01")

    assert excinfo.value.error_code == code
    assert driver.quit_calls == 1


def test_missing_elements_read_as_empty(page_steps: list[tuple[str, Any]]) -> None:
    values = dict(PAGE_VALUES)
    del values["tisyak"]
    record = _backend(_FakeDriver(values)).fetch("WLY01")
    assert record.isyak == ""


def test_has_loaded_prayer_times_ignores_placeholders() -> None:
    assert selenium_client.has_loaded_prayer_times(_FakeDriver()) is True
    placeholders = {key: "00:00:00" for key in PAGE_VALUES if key.startswith("t")}
    assert selenium_client.has_loaded_prayer_times(_FakeDriver(placeholders)) is False


def test_browser_session_quits_on_error() -> None:
    driver = _FakeDriver()
    with pytest.raises(RuntimeError):
        with selenium_client.browser_session(lambda: driver):
            raise RuntimeError("boom")
    assert driver.quit_calls == 1
