"""
Request validation: raw JSON body + request model -> model or Failure.

Only the first failing rule is reported, in field declaration order.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Type, TypeVar, Union

from fastapi import Request
from pydantic import BaseModel, ValidationError

from .errors import ErrorKind
from .results import Failure

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_NOT_JSON = object()


def validate(model: Type[M], body: Any) -> Union[M, Failure]:
    if body is _NOT_JSON:
        return Failure(ErrorKind.VALIDATION_FAILED, "Request body must be valid JSON", code="json")
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return Failure(ErrorKind.VALIDATION_FAILED, "Request body must be a JSON object", code="json")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        first = e.errors(include_url=False)[0]
        loc = first.get("loc") or ()
        field: Optional[str] = str(loc[0]) if loc else None
        logger.debug(f"{model.__name__} rejected: {first.get('type')} on {field}")
        return Failure(
            ErrorKind.VALIDATION_FAILED,
            first.get("msg") or "Invalid request",
            code=first.get("type"),
            field=field,
        )


async def read_json(request: Request) -> Any:
    """Parsed JSON body, None for an empty body, or a sentinel validate() rejects."""
    raw = await request.body()
    if not raw or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return _NOT_JSON
