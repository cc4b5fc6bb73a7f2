"""Service layer."""

from browserdb.services.history_service import HistoryService

__all__ = ["HistoryService"]
