"""The ``visits`` table: one row per recorded visit, pointing at a site by id."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

from browserdb.db.database import Database
from browserdb.db.schema import TABLE_HISTORY, TABLE_VISITS, VISITS_INDICES, VISITS_ROWS
from browserdb.db.table import GenericTable, Statement
from browserdb.errors import ConstraintError, InvalidArgumentError, from_sqlite
from browserdb.models.query import QueryOptions, QuerySort
from browserdb.models.site import Site
from browserdb.models.visit import Visit, VisitType

logger = logging.getLogger(__name__)


class VisitsTable(GenericTable[Visit]):
    """
    Visits reference ``history.id`` through ``siteId``. The schema declares
    no foreign key; ``insert`` checks that the site exists instead.
    """

    name = TABLE_VISITS
    rows = VISITS_ROWS
    indices = VISITS_INDICES

    @staticmethod
    def _visit_type(item: Visit) -> int:
        try:
            return int(VisitType(item.type))
        except ValueError:
            raise InvalidArgumentError(f"unknown visit type {item.type!r}") from None

    def get_insert_and_args(self, item: Visit) -> Statement:
        if item.site.id is None:
            raise InvalidArgumentError(f"visit to {item.site.url} has no site id")
        return (
            f"INSERT INTO {self.name} (siteId, date, type) VALUES (?, ?, ?)",
            (item.site.id, item.date_micros, self._visit_type(item)),
        )

    def get_update_and_args(self, item: Optional[Visit]) -> Statement:
        if item is None or item.id is None:
            raise InvalidArgumentError("only a stored visit (with an id) can be updated")
        return (
            f"UPDATE {self.name} SET date = ?, type = ? WHERE id = ?",
            (item.date_micros, self._visit_type(item), item.id),
        )

    def get_delete_and_args(self, item: Optional[Visit]) -> Statement:
        if item is None:
            return f"DELETE FROM {self.name}", ()
        if item.id is not None:
            return f"DELETE FROM {self.name} WHERE id = ?", (item.id,)
        if item.site.id is None:
            raise InvalidArgumentError(f"visit to {item.site.url} has neither id nor site id")
        return (
            f"DELETE FROM {self.name} WHERE siteId = ? AND date = ?",
            (item.site.id, item.date_micros),
        )

    def get_query_and_args(self, options: Optional[QueryOptions]) -> Statement:
        sql = (
            f"SELECT v.id AS id, v.siteId AS siteId, v.date AS date, v.type AS type, "
            f"h.url AS url, h.title AS title, h.guid AS guid "
            f"FROM {self.name} v INNER JOIN {TABLE_HISTORY} h ON h.id = v.siteId"
        )
        args: tuple[Any, ...] = ()
        if options is not None and options.filter:
            sql += " WHERE instr(h.url, ?) > 0"
            args = (options.filter,)
        if options is not None and options.sort == QuerySort.LAST_VISIT:
            sql += " ORDER BY v.date DESC, v.id DESC"
        return sql, args

    def factory(self, row: dict[str, Any]) -> Visit:
        site = Site(url=row["url"], title=row["title"], id=row["siteId"], guid=row.get("guid"))
        return Visit.from_row(row, site)

    # -- integrity -------------------------------------------------------------

    def insert(self, db: Database, item: Visit) -> int:
        """Insert *item* after checking that its site row exists."""
        site_id = item.site.id
        if site_id is not None:
            try:
                row = db.fetchone(f"SELECT 1 AS found FROM {TABLE_HISTORY} WHERE id = ?", (site_id,))
            except sqlite3.Error as e:
                return self._failed(db, "insert", from_sqlite(e))
            if row is None:
                return self._failed(
                    db, "insert", ConstraintError(f"site {site_id} does not exist")
                )
        return super().insert(db, item)

    def delete_visits_for_site(self, db: Database, site_id: int) -> int:
        """Delete every visit of *site_id*; returns the number removed or -1."""
        db.clear_error()
        try:
            with db.transaction() as conn:
                cursor = conn.execute(
                    f"DELETE FROM {self.name} WHERE siteId = ?", (site_id,)
                )
        except sqlite3.Error as e:
            return self._failed(db, "delete_visits_for_site", from_sqlite(e))
        logger.debug(f"Removed {cursor.rowcount} visit(s) of site {site_id}")
        return cursor.rowcount
