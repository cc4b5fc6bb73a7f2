"""Site domain model — one row of the ``history`` table."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Optional


def new_guid() -> str:
    return str(uuid.uuid4())


@dataclass
class Site:
    """A unique web location. ``url`` is the natural key."""

    url: str
    title: str = ""
    id: Optional[int] = None
    guid: Optional[str] = None

    def ensure_guid(self) -> str:
        """Assign a fresh guid unless one is already set."""
        if not self.guid:
            self.guid = new_guid()
        return self.guid

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Site":
        return cls(
            url=row["url"],
            title=row["title"],
            id=row.get("id"),
            guid=row.get("guid"),
        )
