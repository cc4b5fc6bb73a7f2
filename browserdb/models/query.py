"""Query options and the composite (site, visit) item."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from browserdb.models.site import Site
from browserdb.models.visit import Visit


class QuerySort(str, Enum):
    NONE = "none"
    LAST_VISIT = "last_visit"


@dataclass
class QueryOptions:
    """``filter`` is a case-sensitive substring matched against urls."""

    filter: Optional[str] = None
    sort: QuerySort = QuerySort.NONE


@dataclass
class SiteVisit:
    """Item type of the joined history/visits store, in and out."""

    site: Optional[Site] = None
    visit: Optional[Visit] = None
