"""
Owner-scoped reads and writes.

A row that does not exist and a row owned by someone else are reported the
same way (404) so callers cannot probe for other users' ids. The two cases
are still told apart in the logs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from ..backend import BackendResult, TableBackend
from ..errors import ErrorKind
from ..results import Failure, not_found

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def backend_failure(result: BackendResult, context: str) -> Failure:
    """Map a backend error to a Failure; unique violations become CONFLICT."""
    err = result.error
    if err is not None and err.is_unique_violation:
        return Failure(ErrorKind.CONFLICT, "Resource already exists", code=err.code)
    logger.error(f"{context}: backend error {err.code if err else '?'}: {err.message if err else ''}")
    return Failure(
        ErrorKind.INTERNAL,
        "Internal server error",
        details={"original_error": err.message if err else context},
    )


def _classify_miss(backend: TableBackend, table: str, row_id: str, user_id: str, resource: str) -> Failure:
    res = backend.table(table).select("id, user_id").eq("id", row_id).maybe_single().execute()
    if res.ok and res.data:
        logger.warning(f"{resource} {row_id} denied to user {user_id}: owned by another user")
    else:
        logger.info(f"{resource} {row_id} not found for user {user_id}")
    return not_found(resource)


def find_owned(
    backend: TableBackend,
    table: str,
    row_id: str,
    user_id: str,
    resource: str,
    columns: str = "*",
    owner_column: str = "user_id",
) -> Union[Row, Failure]:
    """The row when it exists and belongs to user_id, else a 404 Failure."""
    if columns != "*" and owner_column not in [c.strip() for c in columns.split(",")]:
        columns = f"{columns}, {owner_column}"
    res = backend.table(table).select(columns).eq("id", row_id).maybe_single().execute()
    if not res.ok:
        return backend_failure(res, f"find {table}")
    row: Optional[Row] = res.data
    if row is None:
        logger.info(f"{resource} {row_id} not found for user {user_id}")
        return not_found(resource)
    if row.get(owner_column) != user_id:
        logger.warning(f"{resource} {row_id} denied to user {user_id}: owned by another user")
        return not_found(resource)
    return row


def update_owned(
    backend: TableBackend,
    table: str,
    row_id: str,
    user_id: str,
    values: Row,
    resource: str,
) -> Union[Row, Failure]:
    """Apply values to the owned row and return the updated row."""
    if not backend.supports_conditional_writes:
        owned = find_owned(backend, table, row_id, user_id, resource, "id, user_id")
        if isinstance(owned, Failure):
            return owned

    res = backend.table(table).update(values).eq("id", row_id).eq("user_id", user_id).select("*").execute()
    if not res.ok:
        return backend_failure(res, f"update {table}")
    rows = res.data or []
    if not rows:
        return _classify_miss(backend, table, row_id, user_id, resource)
    return rows[0]


def delete_owned(
    backend: TableBackend,
    table: str,
    row_id: str,
    user_id: str,
    resource: str,
) -> Union[Row, Failure]:
    """Delete the owned row and return it."""
    if not backend.supports_conditional_writes:
        owned = find_owned(backend, table, row_id, user_id, resource, "id, user_id")
        if isinstance(owned, Failure):
            return owned

    res = backend.table(table).delete().eq("id", row_id).eq("user_id", user_id).select("*").execute()
    if not res.ok:
        return backend_failure(res, f"delete {table}")
    rows = res.data or []
    if not rows:
        return _classify_miss(backend, table, row_id, user_id, resource)
    return rows[0]
