from __future__ import annotations

import logging
import sys
from pathlib import Path

from . import config

LOGGER = logging.getLogger("waktusolat")
_LOGGER_INITIALISED = False


def _configure_logger(log_path: Path) -> None:
    """Configure the shared application logger to write to ``log_path``.

    Console output goes to stderr; stdout is reserved for command output.
    """

    global _LOGGER_INITIALISED

    log_path.parent.mkdir(parents=True, exist_ok=True)

    for handler in list(LOGGER.handlers):
        LOGGER.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # noqa: BLE001
            continue

    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)

    LOGGER.setLevel(logging.INFO)
    LOGGER.addHandler(stream_handler)
    LOGGER.addHandler(file_handler)
    LOGGER.propagate = False

    _LOGGER_INITIALISED = True


def _ensure_logger() -> None:
    if _LOGGER_INITIALISED:
        return
    _configure_logger(config.LOG_FILE)


def ensure_dirs() -> None:
    """Ensure that the data and log directories exist."""

    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    config.LOG_DIR.mkdir(parents=True, exist_ok=True)


def log_line(message: str, level: int = logging.INFO) -> None:
    """Write a timestamped log line to stderr and the active log file."""

    _ensure_logger()
    LOGGER.log(level, message)
