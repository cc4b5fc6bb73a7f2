"""The ``history`` table: one row per distinct site url."""

from __future__ import annotations

from typing import Any, Optional

from browserdb.db.database import Database
from browserdb.db.schema import HISTORY_ROWS, TABLE_HISTORY
from browserdb.db.table import GenericTable, Statement
from browserdb.models.query import QueryOptions
from browserdb.models.site import Site

SITE_COLUMNS = "id, guid, url, title"


class HistoryTable(GenericTable[Site]):
    """Sites keyed by url. Only the title can change after insert."""

    name = TABLE_HISTORY
    rows = HISTORY_ROWS

    def get_insert_and_args(self, item: Site) -> Statement:
        item.ensure_guid()
        return (
            f"INSERT INTO {self.name} (guid, url, title) VALUES (?, ?, ?)",
            (item.guid, item.url, item.title),
        )

    def get_update_and_args(self, item: Site) -> Statement:
        return (
            f"UPDATE {self.name} SET title = ? WHERE url = ?",
            (item.title, item.url),
        )

    def get_delete_and_args(self, item: Optional[Site]) -> Statement:
        if item is not None:
            return f"DELETE FROM {self.name} WHERE url = ?", (item.url,)
        return f"DELETE FROM {self.name}", ()

    def get_query_and_args(self, options: Optional[QueryOptions]) -> Statement:
        if options is not None and options.filter:
            # instr() is a case-sensitive substring test with no LIKE metacharacters
            return (
                f"SELECT {SITE_COLUMNS} FROM {self.name} WHERE instr(url, ?) > 0",
                (options.filter,),
            )
        return f"SELECT {SITE_COLUMNS} FROM {self.name}", ()

    def factory(self, row: dict[str, Any]) -> Site:
        return Site.from_row(row)

    # -- exact lookups ---------------------------------------------------------

    def get_by_url(self, db: Database, url: str) -> Optional[Site]:
        cursor = db.execute_query(
            f"SELECT {SITE_COLUMNS} FROM {self.name} WHERE url = ?",
            self.factory,
            (url,),
        )
        return cursor[0] if cursor.count == 1 else None

    def get_by_id(self, db: Database, site_id: int) -> Optional[Site]:
        cursor = db.execute_query(
            f"SELECT {SITE_COLUMNS} FROM {self.name} WHERE id = ?",
            self.factory,
            (site_id,),
        )
        return cursor[0] if cursor.count == 1 else None
