"""Generic single-table CRUD primitive.

A concrete table supplies its name, column layout and four statement
builders; ``GenericTable`` runs them against a ``Database`` and turns every
failure into a negative sentinel plus ``Database.last_error``.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Generic, Optional, Protocol, TypeVar

from browserdb.db.cursor import Cursor
from browserdb.db.database import Database
from browserdb.errors import HistoryError, InvalidArgumentError, from_sqlite
from browserdb.models.query import QueryOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")

Statement = tuple[str, tuple[Any, ...]]


class Table(Protocol):
    """What ``Database.ensure_table`` and callers need from any table."""

    name: str

    def create(self, db: Database, version: int) -> bool: ...

    def update_table(self, db: Database, from_version: int, to_version: int) -> bool: ...


class GenericTable(Generic[T]):
    name: str = ""
    rows: str = ""
    indices: tuple[str, ...] = ()
    # version -> statements that bring the table from version - 1 to version
    migrations: dict[int, tuple[str, ...]] = {}

    # -- statement builders (override) -----------------------------------------

    def get_insert_and_args(self, item: T) -> Statement:
        raise InvalidArgumentError(f"{self.name} does not support insert")

    def get_update_and_args(self, item: T) -> Statement:
        raise InvalidArgumentError(f"{self.name} does not support update")

    def get_delete_and_args(self, item: Optional[T]) -> Statement:
        raise InvalidArgumentError(f"{self.name} does not support delete")

    def get_query_and_args(self, options: Optional[QueryOptions]) -> Statement:
        return f"SELECT * FROM {self.name}", ()

    def factory(self, row: dict[str, Any]) -> T:
        """Convert a fetched row into this table's item. Concrete tables override this."""
        raise NotImplementedError(f"{type(self).__name__} must override factory()")

    # -- schema ----------------------------------------------------------------

    def create(self, db: Database, version: int) -> bool:
        try:
            with db.transaction() as conn:
                conn.execute(f"CREATE TABLE IF NOT EXISTS {self.name} ({self.rows})")
                for statement in self.indices:
                    conn.execute(statement)
        except sqlite3.Error as e:
            self._failed(db, "create", from_sqlite(e))
            return False
        return True

    def update_table(self, db: Database, from_version: int, to_version: int) -> bool:
        try:
            with db.transaction() as conn:
                for version in range(from_version + 1, to_version + 1):
                    for statement in self.migrations.get(version, ()):
                        conn.execute(statement)
        except sqlite3.Error as e:
            self._failed(db, "update_table", from_sqlite(e))
            return False
        return True

    # -- CRUD ------------------------------------------------------------------

    def insert(self, db: Database, item: T) -> int:
        """Insert *item*; returns the new row id or -1."""
        cursor = self._run(db, "insert", self.get_insert_and_args, item)
        return cursor.lastrowid if cursor is not None else -1

    def update(self, db: Database, item: T) -> int:
        """Returns the number of rows changed, or -1."""
        cursor = self._run(db, "update", self.get_update_and_args, item)
        return cursor.rowcount if cursor is not None else -1

    def delete(self, db: Database, item: Optional[T]) -> int:
        """Delete the row matching *item*, or every row when it is None."""
        cursor = self._run(db, "delete", self.get_delete_and_args, item)
        return cursor.rowcount if cursor is not None else -1

    def query(self, db: Database, options: Optional[QueryOptions] = None) -> Cursor[T]:
        db.clear_error()
        sql, args = self.get_query_and_args(options)
        return db.execute_query(sql, self.factory, args)

    # -- internal --------------------------------------------------------------

    def _run(self, db: Database, op: str, build, item) -> Optional[sqlite3.Cursor]:
        db.clear_error()
        try:
            sql, args = build(item)
            with db.transaction() as conn:
                return conn.execute(sql, args)
        except HistoryError as e:
            self._failed(db, op, e)
        except sqlite3.Error as e:
            self._failed(db, op, from_sqlite(e))
        return None

    def _failed(self, db: Database, op: str, error: HistoryError) -> int:
        logger.warning(f"{self.name}.{op} failed: {type(error).__name__}: {error}")
        return db.fail(error)
