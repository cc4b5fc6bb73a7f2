"""Database layer: SQLite tables for sites and visits kept consistent by the application."""

from browserdb.db.cursor import Cursor, CursorStatus
from browserdb.db.database import Database, get_db, reset_db
from browserdb.db.history_table import HistoryTable
from browserdb.db.joined_history_visits import JoinedHistoryVisitsTable
from browserdb.db.schema import SCHEMA_VERSION
from browserdb.db.visits_table import VisitsTable

__all__ = [
    "Cursor", "CursorStatus",
    "Database", "get_db", "reset_db",
    "HistoryTable", "VisitsTable", "JoinedHistoryVisitsTable",
    "SCHEMA_VERSION",
]
