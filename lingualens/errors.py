"""
Application error taxonomy.

Every failure a handler can produce maps to one ErrorKind, and every kind maps
to one HTTP status. Services return Failure results (see results.py); the
exception classes below are for the transport boundary, where FastAPI
dependencies can only short-circuit by raising.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    CONFLICT = "CONFLICT"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
    INTERNAL = "INTERNAL"

    @property
    def status_code(self) -> int:
        return _STATUS[self]


_STATUS = {
    ErrorKind.AUTH_REQUIRED: 401,
    ErrorKind.AUTH_INVALID: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.METHOD_NOT_ALLOWED: 405,
    ErrorKind.UPSTREAM_FAILURE: 500,
    ErrorKind.INTERNAL: 500,
}


def kind_for_status(status_code: int) -> ErrorKind:
    """Best-effort reverse mapping used for framework-raised HTTP errors."""
    if status_code == 401:
        return ErrorKind.AUTH_INVALID
    if status_code == 403:
        return ErrorKind.FORBIDDEN
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 405:
        return ErrorKind.METHOD_NOT_ALLOWED
    if status_code == 409:
        return ErrorKind.CONFLICT
    if 400 <= status_code < 500:
        return ErrorKind.VALIDATION_FAILED
    return ErrorKind.INTERNAL


class LinguaError(Exception):
    """Base exception class for application errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.kind.value
        self.details = details or {}

    @property
    def status_code(self) -> int:
        return self.kind.status_code


class AuthRequiredError(LinguaError):
    kind = ErrorKind.AUTH_REQUIRED

    def __init__(self, message: str = "Authorization header required", **kwargs):
        super().__init__(message, **kwargs)


class AuthInvalidError(LinguaError):
    kind = ErrorKind.AUTH_INVALID

    def __init__(self, message: str = "Invalid or expired token", **kwargs):
        super().__init__(message, **kwargs)


class UpstreamError(LinguaError):
    """Raised when a collaborator call fails."""

    kind = ErrorKind.UPSTREAM_FAILURE

    def __init__(self, message: str, service_name: Optional[str] = None, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.service_name = service_name
        self.upstream_status = status_code


def handle_error(error: Exception, context: str = "", logger=None) -> LinguaError:
    """
    Convert a generic exception to a LinguaError with context.

    Unknown exceptions become INTERNAL with a generic message; the raw message
    is kept in details["original_error"] for development-mode responses.
    """
    if isinstance(error, LinguaError):
        if logger:
            logger.warning(f"{context}: {error.error_code}: {error.message}")
        return error

    if logger:
        logger.error(f"{context}: {error}", exc_info=True)

    return LinguaError("Internal server error", details={"original_error": str(error)})


def log_error(error: LinguaError, logger=None, level: str = "error") -> None:
    if logger is None:
        logger = logging.getLogger(__name__)

    log_func = getattr(logger, level)
    log_func(
        f"{error.error_code}: {error.message}",
        extra={"error_code": error.error_code, "details": error.details},
    )
