"""Configuration constants for the waktu solat scraper."""
from __future__ import annotations

import os
from pathlib import Path

DATA_DIR: Path = Path(os.getenv("WAKTUSOLAT_DATA_DIR", "/app/data"))
LOG_DIR: Path = DATA_DIR / "logs"
LOG_FILE: Path = LOG_DIR / "latest.log"
DB_PATH: Path = DATA_DIR / "waktusolat.db"

# e-solat JSON endpoint; the uppercased zone code is appended verbatim.
API_BASE_URL: str = os.getenv(
    "WAKTUSOLAT_API_BASE_URL",
    "https://www.e-solat.gov.my/index.php?r=esolatApi/takwimsolat&period=today&zone=",
).strip()
# Page carrying the #inputzone selector and the rendered timetable.
BROWSER_BASE_URL: str = os.getenv(
    "WAKTUSOLAT_BROWSER_BASE_URL", "https://www.e-solat.gov.my/"
).strip()
API_OK_STATUS: str = "OK!"

DEFAULT_ZONE: str = os.getenv("WAKTUSOLAT_DEFAULT_ZONE", "SGR01").strip().upper()

# Ordered backend chain; the first backend that yields a valid record wins.
BACKENDS: str = os.getenv("WAKTUSOLAT_BACKENDS", "api,browser")
ZONE_SOURCE: str = os.getenv("WAKTUSOLAT_ZONE_SOURCE", "static").strip().lower()

# Stored and looked-up Gregorian dates must share this exact format.
GREGORIAN_DATE_FORMAT: str = os.getenv("WAKTUSOLAT_DATE_FORMAT", "%d/%m/%Y")


def _parse_timeout_seconds(env_var: str, default: int, *, minimum: int = 1) -> int:
    """Parse a timeout value in seconds from the environment with bounds."""

    try:
        value = int(os.getenv(env_var, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


def _parse_float(env_var: str, default: float) -> float:
    try:
        return float(os.getenv(env_var, str(default)))
    except ValueError:
        return default


REQUEST_TIMEOUT_SECONDS: int = _parse_timeout_seconds("WAKTUSOLAT_REQUEST_TIMEOUT_SECONDS", 30)
PAGE_TIMEOUT_SECONDS: int = _parse_timeout_seconds("WAKTUSOLAT_PAGE_TIMEOUT_SECONDS", 30)
PAGE_SETTLE_SECONDS: float = _parse_float("WAKTUSOLAT_PAGE_SETTLE_SECONDS", 2.0)
RENDER_POLL_SECONDS: float = 0.5
CHROME_BINARY: str = os.getenv("WAKTUSOLAT_CHROME_BINARY", "/usr/bin/chromium")

# Retry wrapper
FETCH_MAX_ATTEMPTS: int = int(os.getenv("WAKTUSOLAT_FETCH_MAX_ATTEMPTS", "3"))
RETRY_BASE_DELAY_SECONDS: float = _parse_float("WAKTUSOLAT_RETRY_BASE_DELAY_SECONDS", 1.0)
RETRY_MAX_BACKOFF_SECONDS: float = _parse_float("WAKTUSOLAT_RETRY_MAX_BACKOFF_SECONDS", 30.0)

# Batch scheduler
MAX_CONCURRENCY: int = int(os.getenv("WAKTUSOLAT_MAX_CONCURRENCY", "3"))
SEQUENTIAL_DELAY_SECONDS: float = _parse_float("WAKTUSOLAT_SEQUENTIAL_DELAY_SECONDS", 0.5)
RETRY_COOLDOWN_SECONDS: float = _parse_float("WAKTUSOLAT_RETRY_COOLDOWN_SECONDS", 2.0)

HISTORY_DEFAULT_LIMIT: int = int(os.getenv("WAKTUSOLAT_HISTORY_DEFAULT_LIMIT", "7"))

COMMON_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "ms-MY,ms;q=0.9,en;q=0.8",
}


def backend_names() -> list[str]:
    """Return the configured backend chain as a list of raw names."""

    return [name.strip().lower() for name in BACKENDS.split(",") if name.strip()]


def use_browser_zone_source() -> bool:
    """Return True if catalogue refreshes should scrape the live page."""

    return ZONE_SOURCE == "browser"
