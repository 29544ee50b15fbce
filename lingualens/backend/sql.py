from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import (
    DateTime,
    MetaData,
    Table,
    and_,
    delete,
    func,
    insert,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .base import (
    BACKEND_FAILURE,
    FOREIGN_KEY_VIOLATION,
    INTEGRITY_VIOLATION,
    NO_ROWS,
    UNDEFINED_COLUMN,
    UNDEFINED_TABLE,
    UNIQUE_VIOLATION,
    BackendError,
    BackendResult,
    Row,
    TableBackend,
    TableQuery,
)

logger = logging.getLogger(__name__)


class _QueryError(Exception):
    def __init__(self, error: BackendError):
        super().__init__(error.message)
        self.error = error


def _parse_datetime(value: str) -> datetime:
    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    dt = datetime.fromisoformat(v)
    # stored naive in UTC on SQLite; compare like with like
    return dt.astimezone(timezone.utc) if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def _integrity_error(exc: IntegrityError) -> BackendError:
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    text = str(orig or exc)
    if pgcode == UNIQUE_VIOLATION or "UNIQUE constraint failed" in text:
        return BackendError(UNIQUE_VIOLATION, "duplicate key value violates unique constraint", text)
    if pgcode == FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in text:
        return BackendError(FOREIGN_KEY_VIOLATION, "insert or update violates foreign key constraint", text)
    return BackendError(pgcode or INTEGRITY_VIOLATION, text)


class SqlTableQuery(TableQuery):
    def __init__(self, backend: "SqlTableBackend", table: str):
        super().__init__(table)
        self._backend = backend

    # ---- helpers ----
    def _table(self) -> Table:
        tbl = self._backend.metadata.tables.get(self.table_name)
        if tbl is None:
            raise _QueryError(BackendError(UNDEFINED_TABLE, f'relation "{self.table_name}" does not exist'))
        return tbl

    def _column(self, tbl: Table, name: str):
        col = tbl.c.get(name)
        if col is None:
            raise _QueryError(
                BackendError(UNDEFINED_COLUMN, f"Could not find the '{name}' column of '{self.table_name}'")
            )
        return col

    def _coerce(self, col, value: Any) -> Any:
        if isinstance(col.type, DateTime) and isinstance(value, str):
            try:
                return _parse_datetime(value)
            except ValueError:
                raise _QueryError(BackendError("22007", f'invalid input syntax for type timestamp: "{value}"'))
        return value

    def _values(self, tbl: Table, row: Row) -> Row:
        return {k: self._coerce(self._column(tbl, k), v) for k, v in row.items()}

    def _where(self, tbl: Table):
        clauses = []
        for name, op, value in self.filters:
            col = self._column(tbl, name)
            if op == "in":
                clauses.append(col.in_([self._coerce(col, v) for v in value]))
                continue
            value = self._coerce(col, value)
            if op == "eq":
                clauses.append(col.is_(None) if value is None else col == value)
            elif op == "neq":
                clauses.append(col.is_not(None) if value is None else col != value)
            elif op == "gt":
                clauses.append(col > value)
            elif op == "gte":
                clauses.append(col >= value)
            elif op == "lt":
                clauses.append(col < value)
            elif op == "lte":
                clauses.append(col <= value)
            elif op == "ilike":
                clauses.append(col.ilike(value))
        for names, pattern in self.any_ilike:
            clauses.append(or_(*[self._column(tbl, n).ilike(pattern) for n in names]))
        return and_(*clauses) if clauses else None

    def _returning(self, tbl: Table):
        if self.columns == ("*",):
            return list(tbl.c)
        return [self._column(tbl, c) for c in self.columns]

    @staticmethod
    def _rows(result) -> List[Row]:
        return [{k: _serialize(v) for k, v in r._mapping.items()} for r in result]

    def _shape(self, rows: List[Row], count: Optional[int]) -> BackendResult:
        if self.single_row:
            if len(rows) != 1:
                return BackendResult(
                    error=BackendError(NO_ROWS, "JSON object requested, multiple (or no) rows returned"),
                    count=count,
                )
            return BackendResult(data=rows[0], count=count)
        if self.maybe_single_row:
            return BackendResult(data=rows[0] if rows else None, count=count)
        return BackendResult(data=rows, count=count)

    # ---- operations ----
    def _select(self, conn: Connection, tbl: Table) -> BackendResult:
        where = self._where(tbl)
        count = None
        if self.count_mode:
            count_stmt = select(func.count()).select_from(tbl)
            if where is not None:
                count_stmt = count_stmt.where(where)
            count = conn.execute(count_stmt).scalar_one()

        stmt = select(*self._returning(tbl))
        if where is not None:
            stmt = stmt.where(where)
        for name, desc in self.ordering:
            col = self._column(tbl, name)
            stmt = stmt.order_by(col.desc() if desc else col.asc())
        if self.limit_n is not None:
            stmt = stmt.limit(self.limit_n)
        if self.offset_n:
            stmt = stmt.offset(self.offset_n)
        return self._shape(self._rows(conn.execute(stmt)), count)

    def _insert(self, conn: Connection, tbl: Table) -> BackendResult:
        payload = self.payload if isinstance(self.payload, list) else [self.payload or {}]
        rows: List[Row] = []
        for row in payload:
            res = conn.execute(insert(tbl).values(**self._values(tbl, row)).returning(*self._returning(tbl)))
            rows.extend(self._rows(res))
        return self._shape(rows, len(rows))

    def _upsert(self, conn: Connection, tbl: Table) -> BackendResult:
        payload = self.payload if isinstance(self.payload, list) else [self.payload or {}]
        keys = self.on_conflict or ("id",)
        rows: List[Row] = []
        for row in payload:
            values = self._values(tbl, row)
            match = and_(*[self._column(tbl, k) == values.get(k) for k in keys])
            existing = conn.execute(select(tbl.c[keys[0]]).where(match)).first()
            if existing is not None:
                changes = {k: v for k, v in values.items() if k not in keys}
                stmt = update(tbl).where(match).values(**changes) if changes else select(tbl).where(match)
                if changes:
                    stmt = stmt.returning(*self._returning(tbl))
                res = conn.execute(stmt)
            else:
                res = conn.execute(insert(tbl).values(**values).returning(*self._returning(tbl)))
            rows.extend(self._rows(res))
        return self._shape(rows, len(rows))

    def _update(self, conn: Connection, tbl: Table) -> BackendResult:
        stmt = update(tbl).values(**self._values(tbl, self.payload or {}))
        where = self._where(tbl)
        if where is not None:
            stmt = stmt.where(where)
        rows = self._rows(conn.execute(stmt.returning(*self._returning(tbl))))
        return self._shape(rows, len(rows))

    def _delete(self, conn: Connection, tbl: Table) -> BackendResult:
        stmt = delete(tbl)
        where = self._where(tbl)
        if where is not None:
            stmt = stmt.where(where)
        rows = self._rows(conn.execute(stmt.returning(*self._returning(tbl))))
        return self._shape(rows, len(rows))

    def execute(self) -> BackendResult:
        handler = {
            "select": self._select,
            "insert": self._insert,
            "upsert": self._upsert,
            "update": self._update,
            "delete": self._delete,
        }[self.op]
        try:
            tbl = self._table()
            with self._backend.engine.begin() as conn:
                result = handler(conn, tbl)
                if result.error is not None and self.op != "select":
                    # single() mismatch on a write: undo it
                    raise _QueryError(result.error)
                return result
        except _QueryError as e:
            return BackendResult(error=e.error)
        except IntegrityError as e:
            err = _integrity_error(e)
            logger.info(f"{self.op} on {self.table_name} rejected: {err.code}")
            return BackendResult(error=err)
        except SQLAlchemyError as e:
            logger.error(f"{self.op} on {self.table_name} failed: {e}")
            return BackendResult(error=BackendError(BACKEND_FAILURE, str(e)))


class SqlTableBackend(TableBackend):
    """Table gateway over a SQLAlchemy engine."""

    supports_conditional_writes = True

    def __init__(self, engine: Engine, metadata: Optional[MetaData] = None):
        if metadata is None:
            from ..models import Base

            metadata = Base.metadata
        self.engine = engine
        self.metadata = metadata

    def table(self, name: str) -> SqlTableQuery:
        return SqlTableQuery(self, name)
