"""Selenium helpers for driving the e-solat page."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from selenium import webdriver
from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support.ui import Select, WebDriverWait

from . import config
from .logging_utils import _scraper_event
from .normalize import clean_page_value
from .utils import log_line

DriverFactory = Callable[[], WebDriver]

ZONE_SELECT_ID = "inputzone"
TIMETABLE_VALUE_SELECTOR = ".timetablerow .masa-solat"
MIN_RENDERED_TIMES = 7


def make_driver() -> WebDriver:
    """Instantiate a headless Chrome WebDriver instance."""

    chrome_options = Options()
    chrome_options.binary_location = config.CHROME_BINARY
    chrome_options.add_argument("--headless=new")
    chrome_options.add_argument("--disable-gpu")
    chrome_options.add_argument("--no-sandbox")
    chrome_options.add_argument("--disable-dev-shm-usage")
    chrome_options.add_argument("--window-size=1920,1080")
    chrome_options.add_argument("--disable-blink-features=AutomationControlled")
    chrome_options.add_argument(f"--user-agent={config.COMMON_HEADERS['User-Agent']}")
    chrome_options.add_experimental_option("excludeSwitches", ["enable-automation"])
    driver = webdriver.Chrome(options=chrome_options)
    driver.set_page_load_timeout(config.PAGE_TIMEOUT_SECONDS)
    return driver


@contextmanager
def browser_session(factory: Optional[DriverFactory] = None) -> Iterator[WebDriver]:
    """Yield a fresh driver for one unit of work and always quit it.

    Sessions are never shared between concurrent fetches.
    """

    driver = (factory or make_driver)()
    try:
        yield driver
    finally:
        try:
            driver.quit()
        except WebDriverException as exc:
            _scraper_event("error", phase="browser_session", context="quit", error=str(exc))


def load_page(driver: WebDriver, url: str, settle_seconds: float) -> None:
    log_line(f"Loading page {url}")
    driver.get(url)
    time.sleep(max(settle_seconds, 0))


def select_zone(driver: WebDriver, zone_code: str, settle_seconds: float) -> None:
    """Pick ``zone_code`` in the zone dropdown and let the page re-render."""

    Select(driver.find_element(By.ID, ZONE_SELECT_ID)).select_by_value(zone_code)
    log_line(f"Selected zone: {zone_code}")
    time.sleep(max(settle_seconds, 0))


def _count_rendered_times(driver: WebDriver) -> int:
    nodes = driver.find_elements(By.CSS_SELECTOR, TIMETABLE_VALUE_SELECTOR)
    return sum(1 for node in nodes if clean_page_value(node.text))


def has_loaded_prayer_times(driver: WebDriver) -> bool:
    return _count_rendered_times(driver) >= MIN_RENDERED_TIMES


def wait_for_prayer_times(driver: WebDriver, timeout_seconds: float, poll_seconds: float) -> None:
    """Block until the timetable shows real values; raises ``TimeoutException``."""

    wait = WebDriverWait(
        driver,
        timeout_seconds,
        poll_frequency=poll_seconds,
        ignored_exceptions=(NoSuchElementException, StaleElementReferenceException),
    )
    wait.until(has_loaded_prayer_times)


def get_text_by_id_safe(driver: WebDriver, element_id: str) -> str:
    """Return the trimmed text of ``#element_id`` or ``""`` when absent/placeholder."""

    try:
        element = driver.find_element(By.ID, element_id)
    except (NoSuchElementException, StaleElementReferenceException):
        return ""
    return clean_page_value(element.text)


__all__ = [
    "DriverFactory",
    "make_driver",
    "browser_session",
    "load_page",
    "select_zone",
    "has_loaded_prayer_times",
    "wait_for_prayer_times",
    "get_text_by_id_safe",
]
