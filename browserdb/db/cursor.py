"""Cursor: the materialised, typed result of a table query."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Generic, Iterator, Optional, Sequence, TypeVar

T = TypeVar("T")


class CursorStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class Cursor(Generic[T]):
    """Rows converted by a table's factory. A failed query yields an empty,
    failed cursor instead of raising."""

    def __init__(
        self,
        rows: Optional[Sequence[T]] = None,
        status: CursorStatus = CursorStatus.SUCCESS,
        message: str = "",
    ):
        self._rows: list[T] = list(rows or [])
        self.status = status
        self.message = message

    @classmethod
    def from_rows(cls, rows: Sequence[dict], factory: Callable[[dict], T]) -> "Cursor[T]":
        return cls([factory(r) for r in rows])

    @classmethod
    def failure(cls, message: str) -> "Cursor[T]":
        return cls(status=CursorStatus.FAILURE, message=message)

    @property
    def ok(self) -> bool:
        return self.status is CursorStatus.SUCCESS

    @property
    def count(self) -> int:
        return len(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __getitem__(self, index: int) -> T:
        return self._rows[index]

    def __iter__(self) -> Iterator[T]:
        return iter(self._rows)

    def __repr__(self) -> str:
        return f"Cursor(status={self.status.value}, count={self.count})"
