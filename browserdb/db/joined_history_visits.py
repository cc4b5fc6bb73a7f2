"""
Joined view over the ``history`` and ``visits`` tables.

This isn't a real table. It presents a site and its visits as one item and
keeps both tables consistent, since the schema has no foreign keys:

1. Adding a visit makes sure a site row exists for it (deduplicated by url).
2. Deleting a site also removes every visit to it.
3. Updates only touch visit-level fields; site titles change through inserts.

Each operation runs in one transaction. A failing step rolls the whole
operation back, returns -1 and leaves its error on ``Database.last_error``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from browserdb.db.cursor import Cursor
from browserdb.db.database import Database, TransactionAborted
from browserdb.db.history_table import HistoryTable
from browserdb.db.visits_table import VisitsTable
from browserdb.errors import InvalidArgumentError
from browserdb.models.query import QueryOptions, QuerySort, SiteVisit
from browserdb.models.site import Site
from browserdb.models.visit import Visit, VisitType, from_micros

logger = logging.getLogger(__name__)

HISTORY_VISITS = "history-visits"


def _step(result: int) -> int:
    if result < 0:
        raise TransactionAborted(result)
    return result


class JoinedHistoryVisitsTable:
    """Composite store accepting and returning ``SiteVisit`` items."""

    name = HISTORY_VISITS

    def __init__(
        self,
        history: Optional[HistoryTable] = None,
        visits: Optional[VisitsTable] = None,
    ):
        self.history = history or HistoryTable()
        self.visits = visits or VisitsTable()

    # -- schema ----------------------------------------------------------------

    def create(self, db: Database, version: int) -> bool:
        def body() -> int:
            _step(1 if self.history.create(db, version) else -1)
            return _step(1 if self.visits.create(db, version) else -1)

        return self._atomic(db, "create", body) >= 0

    def update_table(self, db: Database, from_version: int, to_version: int) -> bool:
        def body() -> int:
            _step(1 if self.history.update_table(db, from_version, to_version) else -1)
            return _step(1 if self.visits.update_table(db, from_version, to_version) else -1)

        return self._atomic(db, "update_table", body) >= 0

    # -- site identity ---------------------------------------------------------

    def resolve_site_id(self, db: Database, site: Site) -> Optional[int]:
        """Id of the stored site with exactly ``site.url``, if there is one."""
        found = self.history.get_by_url(db, site.url)
        if found is None:
            logger.debug(f"No stored site for {site.url}")
            return None
        return found.id

    def _upsert_site(self, db: Database, site: Site) -> int:
        if site.id is None:
            site_id = self.resolve_site_id(db, site)
            if site_id is None:
                site.id = _step(self.history.insert(db, site))
                return 1
            site.id = site_id
        # Only the title is mutable
        return _step(self.history.update(db, site))

    def record_site(self, db: Database, site: Site) -> int:
        """Insert or retitle *site* without recording a visit. Returns its id."""
        db.clear_error()

        def body() -> int:
            self._upsert_site(db, site)
            return site.id  # type: ignore[return-value]

        return self._atomic(db, "record_site", body, site)

    def record_visit(self, db: Database, visit: Visit) -> int:
        """Upsert the visit's site, then store the visit. Returns the visit id."""
        db.clear_error()

        def body() -> int:
            self._upsert_site(db, visit.site)
            visit.id = _step(self.visits.insert(db, visit))
            return visit.id

        result = self._atomic(db, "record_visit", body, visit.site)
        if result < 0:
            visit.id = None
        return result

    # -- CRUD ------------------------------------------------------------------

    def insert(self, db: Database, item: Optional[SiteVisit]) -> int:
        """
        Store a visit, creating or retitling its site as needed.

        With only a site given, a visit to it is recorded "now"; use
        ``record_site`` to store a site on its own.
        """
        if item is not None and item.visit is not None:
            return self.record_visit(db, item.visit)
        if item is not None and item.site is not None:
            return self.record_visit(db, Visit(site=item.site, type=VisitType.UNKNOWN))
        return db.fail(InvalidArgumentError("insert needs a site or a visit"))

    def update(self, db: Database, item: Optional[SiteVisit]) -> int:
        """Update the visit's date and type. Site fields are left alone."""
        return self.visits.update(db, item.visit if item is not None else None)

    def delete(self, db: Database, item: Optional[SiteVisit]) -> int:
        """
        Delete a visit, a site with all its visits, or (``item is None``)
        everything. Returns the number of rows removed from the targeted table.

        A deleted site's ``id`` is cleared so the same object can be recorded
        again. The wildcard delete has no site objects to clear; callers must
        drop ids they still hold.
        """
        db.clear_error()
        if item is None:
            def wipe() -> int:
                _step(self.history.delete(db, None))
                return _step(self.visits.delete(db, None))

            return self._atomic(db, "delete", wipe)

        if item.visit is not None:
            return self.visits.delete(db, item.visit)

        if item.site is not None:
            site = item.site

            def cascade() -> int:
                # The row goes by url, so its visits go by the id stored for that url
                site_id = self.resolve_site_id(db, site)
                if site_id is not None:
                    _step(self.visits.delete_visits_for_site(db, site_id))
                return _step(self.history.delete(db, site))

            removed = self._atomic(db, "delete", cascade)
            if removed >= 0:
                site.id = None
            return removed

        return db.fail(InvalidArgumentError("delete needs a site, a visit or no item at all"))

    # -- joined view -----------------------------------------------------------

    def factory(self, row: dict[str, Any]) -> SiteVisit:
        site = Site(url=row["url"], title=row["title"], id=row["siteId"], guid=row.get("guid"))
        visit = Visit(
            site=site,
            date=from_micros(row["date"]),
            type=VisitType(row["type"]),
            id=row["visitId"],
        )
        return SiteVisit(site=site, visit=visit)

    def get_query_and_args(self, options: Optional[QueryOptions]) -> tuple[str, tuple[Any, ...]]:
        h, v = self.history.name, self.visits.name
        # One row per site: its latest visit, newest id winning a tie
        sql = (
            f"SELECT {h}.id AS siteId, {v}.id AS visitId, url, title, guid, date, type "
            f"FROM {v} INNER JOIN {h} ON {h}.id = {v}.siteId "
            f"WHERE {v}.id = ("
            f"SELECT latest.id FROM {v} latest WHERE latest.siteId = {v}.siteId "
            f"ORDER BY latest.date DESC, latest.id DESC LIMIT 1)"
        )
        args: tuple[Any, ...] = ()
        if options is not None and options.filter:
            sql += " AND instr(url, ?) > 0"
            args = (options.filter,)
        if options is not None and options.sort == QuerySort.LAST_VISIT:
            sql += " ORDER BY date DESC, visitId DESC"
        return sql, args

    def query(self, db: Database, options: Optional[QueryOptions] = None) -> Cursor[SiteVisit]:
        db.clear_error()
        sql, args = self.get_query_and_args(options)
        return db.execute_query(sql, self.factory, args)

    # -- internal --------------------------------------------------------------

    def _atomic(self, db: Database, op: str, body: Callable[[], int], *sites: Site) -> int:
        """Run *body* in one transaction, restoring *sites* if it rolls back."""
        snapshots = [(site, site.id, site.guid) for site in sites]
        try:
            with db.transaction():
                return body()
        except TransactionAborted:
            for site, site_id, guid in snapshots:
                site.id, site.guid = site_id, guid
            logger.warning(f"{self.name}.{op} rolled back: {db.last_error}")
            return -1
