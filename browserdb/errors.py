"""Error taxonomy for the history store.

Tables never raise these; they record them on ``Database.last_error`` and
return a negative sentinel. ``HistoryService`` re-raises them to callers.
"""

from __future__ import annotations

import sqlite3


class HistoryError(Exception):
    """Base class for every history-store failure."""


class ConstraintError(HistoryError):
    """Duplicate url/guid, or a visit pointing at a site that does not exist."""


class InvalidArgumentError(HistoryError):
    """The item handed to an operation cannot be acted on."""


class StorageError(HistoryError):
    """Any other failure surfaced by SQLite."""


def from_sqlite(exc: sqlite3.Error) -> HistoryError:
    if isinstance(exc, sqlite3.IntegrityError):
        err: HistoryError = ConstraintError(str(exc))
    else:
        err = StorageError(str(exc))
    err.__cause__ = exc
    return err
