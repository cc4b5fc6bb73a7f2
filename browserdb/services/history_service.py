"""
History service: the caller-facing API over the joined history/visits store.
"""
from __future__ import annotations

import logging
from typing import NoReturn, Optional

from browserdb.db.database import Database, get_db
from browserdb.db.joined_history_visits import JoinedHistoryVisitsTable
from browserdb.db.schema import SCHEMA_VERSION
from browserdb.errors import HistoryError, StorageError
from browserdb.models import QueryOptions, QuerySort, Site, SiteVisit, Visit

logger = logging.getLogger(__name__)


class HistoryService:
    """Records and reads browsing history, raising ``HistoryError`` on failure"""

    def __init__(
        self,
        db: Optional[Database] = None,
        store: Optional[JoinedHistoryVisitsTable] = None,
    ):
        self._db = db or get_db()
        self._store = store or JoinedHistoryVisitsTable()
        self._db.init()
        if not self._db.ensure_table(self._store, SCHEMA_VERSION):
            self._raise("prepare the history schema")

    @property
    def db(self) -> Database:
        return self._db

    # -- writes ----------------------------------------------------------------

    def record_site(self, site: Site) -> Site:
        """Store or retitle a site without recording a visit"""
        self._check(self._store.record_site(self._db, site), f"record site {site.url}")
        logger.info(f"Recorded site {site.id}: {site.url}")
        return site

    def record_visit(self, visit: Visit) -> Visit:
        """Store a visit, creating its site on first sight of the url"""
        self._check(self._store.record_visit(self._db, visit), f"record visit to {visit.site.url}")
        logger.info(f"Recorded visit {visit.id} to site {visit.site.id} ({visit.type.name})")
        return visit

    def update_visit(self, visit: Visit) -> int:
        count = self._check(
            self._store.update(self._db, SiteVisit(visit=visit)), f"update visit {visit.id}"
        )
        logger.info(f"Updated visit {visit.id}")
        return count

    def remove_visit(self, visit: Visit) -> int:
        count = self._check(
            self._store.delete(self._db, SiteVisit(visit=visit)), f"remove visit {visit.id}"
        )
        logger.info(f"Removed {count} visit(s) to {visit.site.url}")
        return count

    def remove_site(self, site: Site) -> int:
        """Remove a site together with all of its visits"""
        count = self._check(
            self._store.delete(self._db, SiteVisit(site=site)), f"remove site {site.url}"
        )
        logger.info(f"Removed site {site.url}")
        return count

    def clear(self) -> int:
        """Remove every site and visit"""
        count = self._check(self._store.delete(self._db, None), "clear history")
        logger.info(f"Cleared history ({count} visit(s))")
        return count

    # -- reads -----------------------------------------------------------------

    def search(self, filter: Optional[str] = None, recent_first: bool = False) -> list[SiteVisit]:
        """One row per site whose url contains *filter*, with its latest visit"""
        options = QueryOptions(
            filter=filter,
            sort=QuerySort.LAST_VISIT if recent_first else QuerySort.NONE,
        )
        cursor = self._store.query(self._db, options)
        if not cursor.ok:
            self._raise("search history")
        return list(cursor)

    def sites(self, filter: Optional[str] = None) -> list[Site]:
        cursor = self._store.history.query(self._db, QueryOptions(filter=filter))
        if not cursor.ok:
            self._raise("list sites")
        return list(cursor)

    def get_site(self, url: str) -> Optional[Site]:
        self._db.clear_error()
        site = self._store.history.get_by_url(self._db, url)
        if site is None and self._db.last_error is not None:
            self._raise(f"look up site {url}")
        return site

    # -- internal --------------------------------------------------------------

    def _check(self, result: int, action: str) -> int:
        if result < 0:
            self._raise(action)
        return result

    def _raise(self, action: str) -> NoReturn:
        error: HistoryError = self._db.last_error or StorageError("unknown failure")
        logger.error(f"Failed to {action}: {error}")
        raise error
