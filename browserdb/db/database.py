"""Core database connection with ACID transaction support."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Generator, Optional, TypeVar

from browserdb.db.cursor import Cursor
from browserdb.db.schema import SCHEMA_DDL, SCHEMA_VERSION, TABLE_VERSIONS
from browserdb.errors import HistoryError, StorageError, from_sqlite

if TYPE_CHECKING:
    from browserdb.db.table import Table

logger = logging.getLogger(__name__)

T = TypeVar("T")

MEMORY = ":memory:"


class TransactionAborted(Exception):
    """Raised inside ``transaction()`` to roll back after a sentinel failure."""


class Database:
    """
    SQLite database wrapper with explicit ACID transaction support.

    Every mutation goes through ``transaction()``, which commits on success
    and rolls back on failure. Blocks nest: an inner ``transaction()`` runs
    under a savepoint of the outer one, so a failing inner block undoes only
    its own writes and only the outermost block commits.

    Tables report failures by returning a negative sentinel; the error
    itself is parked on ``last_error`` until the next operation.
    """

    def __init__(self, path: Optional[Path | str] = None):
        from browserdb.config import get_db_path
        if path is None:
            self.path: Path = get_db_path()
        elif isinstance(path, str):
            self.path = Path(path)
        else:
            self.path = path
        self._conn: Optional[sqlite3.Connection] = None
        self._depth = 0
        self.last_error: Optional[HistoryError] = None

    # -- connection lifecycle --------------------------------------------------

    @property
    def in_memory(self) -> bool:
        return str(self.path) == MEMORY

    def _ensure_dir(self) -> None:
        if not self.in_memory:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._ensure_dir()
            self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if not self.in_memory:
                self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
            self._depth = 0

    def init(self) -> None:
        """Create the table version registry (idempotent)."""
        conn = self.connection()
        conn.executescript(SCHEMA_DDL)
        conn.commit()

    # -- transaction helpers ---------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """ACID transaction: commits on success, rolls back on exception."""
        conn = self.connection()
        if self._depth:
            savepoint = f"sp_{self._depth}"
            conn.execute(f"SAVEPOINT {savepoint}")
            self._depth += 1
            try:
                yield conn
                conn.execute(f"RELEASE SAVEPOINT {savepoint}")
            except Exception:
                conn.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
                conn.execute(f"RELEASE SAVEPOINT {savepoint}")
                raise
            finally:
                self._depth -= 1
            return

        self._depth = 1
        if not conn.in_transaction:
            conn.execute("BEGIN")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._depth = 0

    # -- error slot ------------------------------------------------------------

    def fail(self, error: HistoryError) -> int:
        """Record *error* as the last failure and return the sentinel."""
        self.last_error = error
        return -1

    def clear_error(self) -> None:
        self.last_error = None

    def execute_query(
        self,
        sql: str,
        factory: Callable[[dict[str, Any]], T],
        params: tuple = (),
    ) -> Cursor[T]:
        """Run a raw SELECT and convert each row with *factory*."""
        try:
            rows = self.fetchall(sql, params)
        except sqlite3.Error as e:
            self.fail(from_sqlite(e))
            logger.warning(f"Query failed: {e}")
            return Cursor.failure(str(e))
        return Cursor.from_rows(rows, factory)

    # -- low-level query helpers -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        return self.connection().execute(sql, params)

    def fetchone(self, sql: str, params: tuple = ()) -> Optional[dict[str, Any]]:
        row = self.connection().execute(sql, params).fetchone()
        return dict(row) if row else None

    def fetchall(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        rows = self.connection().execute(sql, params).fetchall()
        return [dict(r) for r in rows]

    # -- table registry --------------------------------------------------------

    def table_version(self, name: str) -> Optional[int]:
        row = self.fetchone(
            f"SELECT version FROM {TABLE_VERSIONS} WHERE name = ?", (name,)
        )
        return row["version"] if row else None

    def ensure_table(self, table: "Table", version: int = SCHEMA_VERSION) -> bool:
        """Create *table* if it is unknown, or upgrade it to *version*."""
        self.clear_error()
        current = self.table_version(table.name)
        if current == version:
            return True
        if current is not None and current > version:
            self.fail(StorageError(
                f"{table.name} is at version {current}, newer than {version}"
            ))
            logger.warning(f"Refusing to downgrade {table.name} from {current} to {version}")
            return False

        try:
            with self.transaction() as conn:
                if current is None:
                    ok = table.create(self, version)
                else:
                    ok = table.update_table(self, current, version)
                if not ok:
                    raise TransactionAborted(table.name)
                conn.execute(
                    f"""INSERT INTO {TABLE_VERSIONS} (name, version)
                        VALUES (?, ?)
                        ON CONFLICT(name) DO UPDATE
                        SET version = excluded.version,
                            updated_at = strftime('%Y-%m-%dT%H:%M:%SZ','now')""",
                    (table.name, version),
                )
        except TransactionAborted:
            logger.warning(f"Could not prepare table {table.name} at version {version}")
            return False
        except sqlite3.Error as e:
            self.fail(from_sqlite(e))
            logger.warning(f"Could not prepare table {table.name}: {e}")
            return False

        if current is None:
            logger.info(f"Created table {table.name} at version {version}")
        else:
            logger.info(f"Upgraded table {table.name} from {current} to {version}")
        return True


# -- module singleton ----------------------------------------------------------

_default_db: Optional[Database] = None


def get_db(path: Optional[Path] = None) -> Database:
    """Return (and lazily initialise) the module-level Database singleton."""
    global _default_db
    if _default_db is None:
        _default_db = Database(path)
        _default_db.init()
    return _default_db


def reset_db() -> None:
    """Close and discard the singleton (useful in tests)."""
    global _default_db
    if _default_db is not None:
        _default_db.close()
        _default_db = None
