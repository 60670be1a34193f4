"""Record types shared by the backends, the store and the batch scheduler."""
from __future__ import annotations

import sqlite3
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Union

TIME_FIELDS: tuple[str, ...] = (
    "imsak",
    "subuh",
    "syuruk",
    "dhuha",
    "zohor",
    "asar",
    "maghrib",
    "isyak",
)


@dataclass
class PrayerTimeRecord:
    """One zone's schedule for one calendar day."""

    zone_label: str
    gregorian_date: str
    bearing: str = ""
    hijri_date: str = ""
    imsak: str = ""
    subuh: str = ""
    syuruk: str = ""
    dhuha: str = ""
    zohor: str = ""
    asar: str = ""
    maghrib: str = ""
    isyak: str = ""
    created_at: Optional[str] = None
    id: Optional[int] = None

    def times(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in TIME_FIELDS}

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "PrayerTimeRecord":
        return cls(
            id=int(row["id"]),
            zone_label=row["zone_label"] or "",
            bearing=row["bearing"] or "",
            gregorian_date=row["gregorian_date"] or "",
            hijri_date=row["hijri_date"] or "",
            created_at=row["created_at"],
            **{name: row[name] or "" for name in TIME_FIELDS},
        )


@dataclass(frozen=True)
class ZoneEntry:
    code: str
    state: str
    description: str


@dataclass
class ZoneGroup:
    state: str
    zones: list[tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "zones": [{"code": code, "description": desc} for code, desc in self.zones],
        }


@dataclass(frozen=True)
class ScrapeSuccess:
    zone_code: str
    record: PrayerTimeRecord
    retried: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "zone": self.zone_code,
            "success": True,
            "retried": self.retried,
            "gregorian_date": self.record.gregorian_date,
        }


@dataclass(frozen=True)
class ScrapeFailure:
    zone_code: str
    error_message: str
    error_code: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "zone": self.zone_code,
            "success": False,
            "error": self.error_message,
            "error_code": self.error_code,
        }


ScrapeOutcome = Union[ScrapeSuccess, ScrapeFailure]


@dataclass
class BatchSummary:
    total_zones: int
    successes: list[ScrapeSuccess]
    failures: list[ScrapeFailure]
    duration_ms: float
    parallel: bool
    concurrency: int
    cancelled: bool = False

    @property
    def success_count(self) -> int:
        return len(self.successes)

    @property
    def error_count(self) -> int:
        return len(self.failures)

    @property
    def retried_count(self) -> int:
        return sum(1 for item in self.successes if item.retried)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_zones": self.total_zones,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "retried": self.retried_count,
            "duration_ms": round(self.duration_ms, 1),
            "parallel": self.parallel,
            "concurrency": self.concurrency,
            "cancelled": self.cancelled,
            "results": [item.to_dict() for item in self.successes],
            "errors": [item.to_dict() for item in self.failures],
        }


__all__ = [
    "TIME_FIELDS",
    "PrayerTimeRecord",
    "ZoneEntry",
    "ZoneGroup",
    "ScrapeSuccess",
    "ScrapeFailure",
    "ScrapeOutcome",
    "BatchSummary",
]
