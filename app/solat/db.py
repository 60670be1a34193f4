"""SQLite helpers for the waktu solat store.

Defines the database path, connection helper and schema initialisation. The
``prayer_times`` table keeps the bare zone code in its own column so that the
(zone, date) identity can be enforced with a ``UNIQUE`` constraint instead of
substring matching on the display label.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from . import config

DB_PATH: Path = config.DB_PATH


def get_connection() -> sqlite3.Connection:
    """Return a SQLite connection to the project database.

    The parent directory is created if missing and ``check_same_thread`` is
    disabled so batch worker threads can write. Callers close the connection.
    """

    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH, check_same_thread=False, timeout=30)
    conn.row_factory = sqlite3.Row
    return conn


def initialize_schema() -> None:
    """Create tables and indexes if they do not yet exist. Idempotent."""

    statements: Iterable[str] = (
        """
        CREATE TABLE IF NOT EXISTS prayer_times (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            zone_code       TEXT,
            zone_label      TEXT NOT NULL,
            bearing         TEXT,
            gregorian_date  TEXT NOT NULL,
            hijri_date      TEXT,
            imsak           TEXT,
            subuh           TEXT,
            syuruk          TEXT,
            dhuha           TEXT,
            zohor           TEXT,
            asar            TEXT,
            maghrib         TEXT,
            isyak           TEXT,
            created_at      TEXT NOT NULL,
            UNIQUE (zone_code, gregorian_date)
        );
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_prayer_times_zone_created
            ON prayer_times(zone_code, created_at DESC);
        """,
        """
        CREATE TABLE IF NOT EXISTS zones (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            code        TEXT NOT NULL UNIQUE,
            state       TEXT NOT NULL,
            description TEXT NOT NULL,
            created_at  TEXT NOT NULL
        );
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_zones_state
            ON zones(state, code);
        """,
    )

    conn = get_connection()
    try:
        with conn:
            for statement in statements:
                conn.execute(statement)
    finally:
        conn.close()


def utc_now() -> str:
    """Return a UTC ISO8601 timestamp; microseconds keep rapid writes ordered."""

    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


__all__ = ["DB_PATH", "get_connection", "initialize_schema", "utc_now"]
