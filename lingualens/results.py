"""Handler outcomes and the JSON envelope they render to."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from fastapi.responses import JSONResponse

from .errors import ErrorKind, LinguaError
from .settings import get_settings


@dataclass
class Success:
    data: Any = None
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)
    status_code: int = 200

    ok = True


@dataclass
class Failure:
    kind: ErrorKind
    message: str
    code: Optional[str] = None
    field: Optional[str] = None
    details: Dict[str, Any] = dataclasses.field(default_factory=dict)

    ok = False

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @classmethod
    def from_error(cls, error: LinguaError) -> "Failure":
        return cls(
            kind=error.kind,
            message=error.message,
            code=error.error_code if error.error_code != error.kind.value else None,
            details=dict(error.details),
        )


Outcome = Union[Success, Failure]


def not_found(resource: str) -> Failure:
    return Failure(ErrorKind.NOT_FOUND, f"{resource} not found or access denied")


def invalid(message: str, field: Optional[str] = None, constraint: Optional[str] = None) -> Failure:
    return Failure(ErrorKind.VALIDATION_FAILED, message, code=constraint, field=field)


def upstream(message: str, details: Optional[dict] = None) -> Failure:
    return Failure(ErrorKind.UPSTREAM_FAILURE, message, details=details or {})


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def envelope(outcome: Outcome) -> Dict[str, Any]:
    """Render an outcome as {success, data|error, metadata}.

    A failure never carries data.
    """
    if isinstance(outcome, Success):
        body: Dict[str, Any] = {"success": True, "data": outcome.data}
        body["metadata"] = {"timestamp": _timestamp(), **(outcome.metadata or {})}
        return body

    body = {"success": False, "error": outcome.message}
    if outcome.code:
        body["code"] = outcome.code
    if outcome.field:
        body["field"] = outcome.field
    if outcome.kind is ErrorKind.INTERNAL and get_settings().is_dev:
        debug = outcome.details.get("original_error")
        if debug:
            body["debug"] = debug
    body["metadata"] = {"timestamp": _timestamp()}
    return body


def respond(outcome: Outcome) -> JSONResponse:
    return JSONResponse(envelope(outcome), status_code=outcome.status_code)


def capability(usage: Dict[str, Any]) -> JSONResponse:
    """Capability-check body for GET on the analysis endpoints."""
    tier = usage.get("tier") or {}
    return JSONResponse(
        {
            "success": True,
            "available": bool(usage.get("canUseAI", False)),
            "remainingRequests": usage.get("remainingRequests"),
            "remainingTokens": usage.get("remainingTokens"),
            "features": tier.get("features", []),
        }
    )
