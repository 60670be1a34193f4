from __future__ import annotations

from typing import Literal

from . import config
from .logging_utils import _scraper_event
from .retry_policy import max_backoff_seconds
from .sources import resolve_backend_names
from .utils import log_line

Entrypoint = Literal["ui", "cli", "tests"]


def _raise_config_error(message: str, *, entrypoint: Entrypoint, error: str) -> None:
    _scraper_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint})")
    raise ValueError(message)


def validate_runtime_config(entrypoint: Entrypoint) -> None:
    """Validate the required settings before serving anything.

    Raises ``ValueError`` on a blocking misconfiguration. Out-of-range
    concurrency is clamped and logged instead.
    """

    backends = resolve_backend_names(config.backend_names())
    if not backends:
        _raise_config_error(
            "WAKTUSOLAT_BACKENDS must name at least one of: api, browser.",
            entrypoint=entrypoint,
            error="backends_missing",
        )

    required_urls = {"api": ("WAKTUSOLAT_API_BASE_URL", config.API_BASE_URL)}
    required_urls["browser"] = ("WAKTUSOLAT_BROWSER_BASE_URL", config.BROWSER_BASE_URL)
    needed = set(backends)
    if config.use_browser_zone_source():
        needed.add("browser")
    for backend in sorted(needed):
        field_name, value = required_urls[backend]
        if not value:
            _raise_config_error(
                f"{field_name} is not configured.",
                entrypoint=entrypoint,
                error="base_url_missing",
            )

    if not config.DEFAULT_ZONE:
        _raise_config_error(
            "WAKTUSOLAT_DEFAULT_ZONE is not configured.",
            entrypoint=entrypoint,
            error="default_zone_missing",
        )

    if config.ZONE_SOURCE not in {"static", "browser"}:
        _raise_config_error(
            "WAKTUSOLAT_ZONE_SOURCE must be 'static' or 'browser'.",
            entrypoint=entrypoint,
            error="zone_source_invalid",
        )

    positive_fields = [
        ("REQUEST_TIMEOUT_SECONDS", config.REQUEST_TIMEOUT_SECONDS),
        ("PAGE_TIMEOUT_SECONDS", config.PAGE_TIMEOUT_SECONDS),
        ("PAGE_SETTLE_SECONDS", config.PAGE_SETTLE_SECONDS),
        ("FETCH_MAX_ATTEMPTS", config.FETCH_MAX_ATTEMPTS),
        ("RETRY_BASE_DELAY_SECONDS", config.RETRY_BASE_DELAY_SECONDS),
    ]
    for field_name, value in positive_fields:
        if value <= 0:
            _raise_config_error(
                f"{field_name} must be greater than zero.",
                entrypoint=entrypoint,
                error="invalid_positive_value",
            )

    largest_backoff = max_backoff_seconds(config.FETCH_MAX_ATTEMPTS)
    if largest_backoff > config.RETRY_MAX_BACKOFF_SECONDS:
        _raise_config_error(
            f"FETCH_MAX_ATTEMPTS={config.FETCH_MAX_ATTEMPTS} with RETRY_BASE_DELAY_SECONDS="
            f"{config.RETRY_BASE_DELAY_SECONDS} backs off {largest_backoff}s, above "
            f"RETRY_MAX_BACKOFF_SECONDS={config.RETRY_MAX_BACKOFF_SECONDS}.",
            entrypoint=entrypoint,
            error="retry_backoff_exceeds_cap",
        )

    if config.MAX_CONCURRENCY < 1:
        adjusted = 1
        _scraper_event(
            "state",
            phase="config",
            context="runtime_validation",
            kind="config_adjustment",
            field="MAX_CONCURRENCY",
            value=config.MAX_CONCURRENCY,
            adjusted=adjusted,
            entrypoint=entrypoint,
        )
        log_line("[CONFIG] MAX_CONCURRENCY < 1; clamping to 1.")
        config.MAX_CONCURRENCY = adjusted


__all__ = ["validate_runtime_config", "Entrypoint"]
