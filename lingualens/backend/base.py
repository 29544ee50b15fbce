"""
Generic table gateway consumed by the request handlers.

Queries are built fluently and executed once:

    backend.table("vocabulary_words").select("*").eq("user_id", uid).order("created_at", desc=True).execute()

execute() never raises for data errors; it returns a BackendResult whose
error carries a well-known code (see UNIQUE_VIOLATION, NO_ROWS).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INTEGRITY_VIOLATION = "23000"
UNDEFINED_TABLE = "42P01"
UNDEFINED_COLUMN = "PGRST204"
NO_ROWS = "PGRST116"
BACKEND_FAILURE = "XX000"

Row = Dict[str, Any]
Payload = Union[Row, List[Row]]


@dataclass
class BackendError:
    code: str
    message: str
    details: Optional[str] = None

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION

    @property
    def is_no_rows(self) -> bool:
        return self.code == NO_ROWS


@dataclass
class BackendResult:
    data: Any = None
    error: Optional[BackendError] = None
    count: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TableQuery(ABC):
    """Fluent query state. Subclasses implement execute()."""

    def __init__(self, table: str):
        self.table_name = table
        self.op = "select"
        self.columns: Sequence[str] = ("*",)
        self.payload: Optional[Payload] = None
        self.on_conflict: Tuple[str, ...] = ()
        self.filters: List[Tuple[str, str, Any]] = []
        self.any_ilike: List[Tuple[Tuple[str, ...], str]] = []
        self.ordering: List[Tuple[str, bool]] = []
        self.limit_n: Optional[int] = None
        self.offset_n: Optional[int] = None
        self.single_row = False
        self.maybe_single_row = False
        self.count_mode: Optional[str] = None

    # ---- operations ----
    def select(self, columns: str = "*", count: Optional[str] = None) -> "TableQuery":
        # insert(...).select() keeps the write; select() only picks columns
        cols = tuple(c.strip() for c in columns.split(",") if c.strip())
        self.columns = cols or ("*",)
        if count:
            self.count_mode = count
        return self

    def insert(self, payload: Payload) -> "TableQuery":
        self.op = "insert"
        self.payload = payload
        return self

    def upsert(self, payload: Payload, on_conflict: str = "id") -> "TableQuery":
        self.op = "upsert"
        self.payload = payload
        self.on_conflict = tuple(c.strip() for c in on_conflict.split(",") if c.strip())
        return self

    def update(self, values: Row) -> "TableQuery":
        self.op = "update"
        self.payload = values
        return self

    def delete(self) -> "TableQuery":
        self.op = "delete"
        return self

    # ---- filters ----
    def _filter(self, column: str, operator: str, value: Any) -> "TableQuery":
        self.filters.append((column, operator, value))
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        return self._filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "TableQuery":
        return self._filter(column, "neq", value)

    def gt(self, column: str, value: Any) -> "TableQuery":
        return self._filter(column, "gt", value)

    def gte(self, column: str, value: Any) -> "TableQuery":
        return self._filter(column, "gte", value)

    def lt(self, column: str, value: Any) -> "TableQuery":
        return self._filter(column, "lt", value)

    def lte(self, column: str, value: Any) -> "TableQuery":
        return self._filter(column, "lte", value)

    def in_(self, column: str, values: Sequence[Any]) -> "TableQuery":
        return self._filter(column, "in", list(values))

    def ilike(self, column: str, pattern: str) -> "TableQuery":
        return self._filter(column, "ilike", pattern)

    def or_ilike(self, columns: Sequence[str], pattern: str) -> "TableQuery":
        """Match when any of the columns is ILIKE the pattern."""
        self.any_ilike.append((tuple(columns), pattern))
        return self

    # ---- shaping ----
    def order(self, column: str, desc: bool = False) -> "TableQuery":
        self.ordering.append((column, desc))
        return self

    def limit(self, n: int) -> "TableQuery":
        self.limit_n = n
        return self

    def offset(self, n: int) -> "TableQuery":
        self.offset_n = n
        return self

    def range(self, start: int, end: int) -> "TableQuery":
        """Inclusive row range, as in PostgREST."""
        self.offset_n = max(0, start)
        self.limit_n = max(0, end - start + 1)
        return self

    def single(self) -> "TableQuery":
        self.single_row = True
        return self

    def maybe_single(self) -> "TableQuery":
        self.maybe_single_row = True
        return self

    @abstractmethod
    def execute(self) -> BackendResult: ...


class TableBackend(ABC):
    """Backend data collaborator."""

    # True when update/delete filtered by owner is a single atomic statement
    supports_conditional_writes: bool = False

    @abstractmethod
    def table(self, name: str) -> TableQuery: ...
