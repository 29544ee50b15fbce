from .base import (
    BACKEND_FAILURE,
    FOREIGN_KEY_VIOLATION,
    NO_ROWS,
    UNDEFINED_COLUMN,
    UNDEFINED_TABLE,
    UNIQUE_VIOLATION,
    BackendError,
    BackendResult,
    TableBackend,
    TableQuery,
)
from .sql import SqlTableBackend

__all__ = [
    "BACKEND_FAILURE",
    "FOREIGN_KEY_VIOLATION",
    "NO_ROWS",
    "UNDEFINED_COLUMN",
    "UNDEFINED_TABLE",
    "UNIQUE_VIOLATION",
    "BackendError",
    "BackendResult",
    "TableBackend",
    "TableQuery",
    "SqlTableBackend",
]
