"""Reconciling store for prayer-time records and the zone catalogue."""
from __future__ import annotations

import threading
from typing import Iterable, Optional

from . import db
from .date_utils import today_string
from .logging_utils import _scraper_event
from .models import TIME_FIELDS, PrayerTimeRecord, ZoneEntry
from .normalize import bare_zone_code
from .validation import MINIMUM_FIELDS

# Serialises find-then-write inside this process; the UNIQUE constraint
# covers writers in other processes.
_WRITE_LOCK = threading.Lock()

# Rows written before zone_code existed are matched on the display label.
_ZONE_PREDICATE = (
    "(zone_code = ? OR (zone_code IS NULL AND UPPER(zone_label) LIKE '%' || ? || '%'))"
)
_MINIMUM_SCHEDULE_PREDICATE = " AND ".join(f"COALESCE({name}, '') != ''" for name in MINIMUM_FIELDS)

_MUTABLE_COLUMNS: tuple[str, ...] = ("bearing", "hijri_date", *TIME_FIELDS, "created_at")


class PrayerTimeStore:
    """Upsert and read ``prayer_times`` rows keyed on (zone code, Gregorian date)."""

    def upsert(self, record: PrayerTimeRecord, zone_code: Optional[str] = None) -> bool:
        """Insert ``record`` or update the row already holding its key.

        ``zone_code`` defaults to the code in front of the record label. Only
        the mutable columns change on update; the zone label and date are
        left as first written. ``record.id`` and ``record.created_at`` are set
        from the stored row. ``sqlite3.Error`` propagates.
        """

        zone_code = (zone_code or bare_zone_code(record.zone_label)).strip().upper()
        if not zone_code or not record.gregorian_date:
            raise ValueError("record needs a zone label and a Gregorian date to be stored")

        record.created_at = db.utc_now()
        mutable_values = [getattr(record, column) or "" for column in _MUTABLE_COLUMNS[:-1]]
        mutable_values.append(record.created_at)
        assignments = ", ".join(f"{column} = ?" for column in _MUTABLE_COLUMNS)

        with _WRITE_LOCK:
            conn = db.get_connection()
            try:
                with conn:
                    existing = conn.execute(
                        "SELECT id FROM prayer_times WHERE zone_code = ? AND gregorian_date = ?",
                        (zone_code, record.gregorian_date),
                    ).fetchone()
                    legacy = None
                    if existing is None:
                        legacy = conn.execute(
                            """
                            SELECT id FROM prayer_times
                            WHERE zone_code IS NULL
                                AND UPPER(zone_label) LIKE '%' || ? || '%'
                                AND gregorian_date = ?
                            ORDER BY created_at DESC, id DESC
                            LIMIT 1
                            """,
                            (zone_code, record.gregorian_date),
                        ).fetchone()

                    if existing is not None:
                        row_id = int(existing["id"])
                        conn.execute(
                            f"UPDATE prayer_times SET {assignments} WHERE id = ?",
                            (*mutable_values, row_id),
                        )
                        action = "updated"
                    elif legacy is not None:
                        row_id = int(legacy["id"])
                        conn.execute(
                            f"UPDATE prayer_times SET {assignments}, zone_code = ? WHERE id = ?",
                            (*mutable_values, zone_code, row_id),
                        )
                        action = "backfilled"
                    else:
                        cursor = conn.execute(
                            f"""
                            INSERT INTO prayer_times (
                                zone_code, zone_label, gregorian_date, {", ".join(_MUTABLE_COLUMNS)}
                            ) VALUES ({", ".join("?" for _ in range(len(_MUTABLE_COLUMNS) + 3))})
                            ON CONFLICT(zone_code, gregorian_date) DO UPDATE SET
                                {", ".join(f"{c} = excluded.{c}" for c in _MUTABLE_COLUMNS)}
                            """,
                            (zone_code, record.zone_label, record.gregorian_date, *mutable_values),
                        )
                        row_id = int(cursor.lastrowid)
                        action = "inserted"
            finally:
                conn.close()

        record.id = row_id
        _scraper_event(
            "store",
            phase="upsert",
            kind=action,
            zone=zone_code,
            gregorian_date=record.gregorian_date,
            row_id=row_id,
        )
        return True

    def find_today(self, zone_code: str, today: Optional[str] = None) -> Optional[PrayerTimeRecord]:
        """Return the newest usable row for ``zone_code`` dated ``today``.

        The date comparison is exact string equality: a ``today`` in any other
        format than the one used by the writer finds nothing.
        """

        code = zone_code.strip().upper()
        date_key = today if today is not None else today_string()
        conn = db.get_connection()
        try:
            row = conn.execute(
                f"""
                SELECT * FROM prayer_times
                WHERE {_ZONE_PREDICATE}
                    AND gregorian_date = ?
                    AND {_MINIMUM_SCHEDULE_PREDICATE}
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (code, code, date_key),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            _scraper_event("store", phase="find_today", kind="miss", zone=code, gregorian_date=date_key)
            return None
        return PrayerTimeRecord.from_row(row)

    def find_history(self, zone_code: str, limit: int = 7) -> list[PrayerTimeRecord]:
        """Return up to ``limit`` most recent usable rows for ``zone_code``."""

        code = zone_code.strip().upper()
        conn = db.get_connection()
        try:
            rows = conn.execute(
                f"""
                SELECT * FROM prayer_times
                WHERE {_ZONE_PREDICATE}
                    AND {_MINIMUM_SCHEDULE_PREDICATE}
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (code, code, max(0, int(limit))),
            ).fetchall()
        finally:
            conn.close()
        return [PrayerTimeRecord.from_row(row) for row in rows]


class ZoneStore:
    """Zone catalogue table; replaced wholesale, never diffed row by row."""

    def replace_all(self, entries: Iterable[ZoneEntry]) -> int:
        rows = [(e.code.strip().upper(), e.state.strip(), e.description.strip()) for e in entries]
        now = db.utc_now()
        conn = db.get_connection()
        try:
            with conn:
                conn.execute("DELETE FROM zones")
                conn.executemany(
                    """
                    INSERT INTO zones (code, state, description, created_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(code) DO UPDATE SET
                        state = excluded.state, description = excluded.description
                    """,
                    [(*row, now) for row in rows],
                )
        finally:
            conn.close()

        _scraper_event("store", phase="zone_catalog", kind="replaced", zones=len(rows))
        return len(rows)

    def list_zones(self) -> list[ZoneEntry]:
        conn = db.get_connection()
        try:
            rows = conn.execute(
                "SELECT code, state, description FROM zones ORDER BY state, code"
            ).fetchall()
        finally:
            conn.close()
        return [ZoneEntry(row["code"], row["state"], row["description"]) for row in rows]

    def count(self) -> int:
        conn = db.get_connection()
        try:
            row = conn.execute("SELECT COUNT(*) AS n FROM zones").fetchone()
        finally:
            conn.close()
        return int(row["n"])

    def zones_for_state(self, state: str) -> list[ZoneEntry]:
        """Zones whose state equals ``state`` ignoring case."""

        conn = db.get_connection()
        try:
            rows = conn.execute(
                """
                SELECT code, state, description FROM zones
                WHERE LOWER(state) = LOWER(?)
                ORDER BY code
                """,
                (state.strip(),),
            ).fetchall()
        finally:
            conn.close()
        return [ZoneEntry(row["code"], row["state"], row["description"]) for row in rows]


__all__ = ["PrayerTimeStore", "ZoneStore"]
