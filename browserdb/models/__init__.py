"""Domain models for the site/visit history store."""

from browserdb.models.site import Site
from browserdb.models.visit import Visit, VisitType
from browserdb.models.query import QueryOptions, QuerySort, SiteVisit

__all__ = [
    "Site",
    "Visit", "VisitType",
    "QueryOptions", "QuerySort", "SiteVisit",
]
