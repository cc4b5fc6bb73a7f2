"""Visit domain model — one row of the ``visits`` table."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any, Optional

from browserdb.models.site import Site

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


class VisitType(IntEnum):
    UNKNOWN = 0
    LINK = 1
    TYPED = 2
    BOOKMARK = 3
    EMBED = 4
    PERMANENT_REDIRECT = 5
    TEMPORARY_REDIRECT = 6
    DOWNLOAD = 7
    FRAMED_LINK = 8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_micros(value: datetime) -> int:
    """Microseconds since the Unix epoch. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _MICROSECOND


def from_micros(value: int) -> datetime:
    return _EPOCH + timedelta(microseconds=value)


@dataclass
class Visit:
    """A single visit to ``site`` at ``date``."""

    site: Site
    date: datetime = field(default_factory=utcnow)
    type: VisitType = VisitType.UNKNOWN
    id: Optional[int] = None

    @property
    def date_micros(self) -> int:
        return to_micros(self.date)

    @classmethod
    def from_row(cls, row: dict[str, Any], site: Site) -> "Visit":
        return cls(
            site=site,
            date=from_micros(row["date"]),
            type=VisitType(row["type"]),
            id=row.get("id"),
        )
