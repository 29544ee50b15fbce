"""Reusable field checks for request models.

Each check raises PydanticCustomError(<constraint>, <message>) so the first
error of a failed model carries a user-facing message and a constraint name.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from pydantic_core import PydanticCustomError

REQUIRED = "required"
TYPE = "type"
MIN_LENGTH = "min_length"
MAX_LENGTH = "max_length"
RANGE = "range"
CHOICE = "choice"


def fail(constraint: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(constraint, message)


def is_blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def required_text(
    v: Any,
    required: str,
    max_len: Optional[int] = None,
    too_long: Optional[str] = None,
    min_len: Optional[int] = None,
    too_short: Optional[str] = None,
) -> str:
    """Non-blank string within bounds, returned trimmed.

    Bounds apply to the string as sent; only the forwarded value is trimmed.
    """
    if is_blank(v):
        raise fail(REQUIRED, required)
    if not isinstance(v, str):
        raise fail(TYPE, required)
    if min_len is not None and len(v) < min_len:
        raise fail(MIN_LENGTH, too_short or required)
    if max_len is not None and len(v) > max_len:
        raise fail(MAX_LENGTH, too_long or required)
    return v.strip()


def optional_text(v: Any, max_len: Optional[int] = None, too_long: Optional[str] = None) -> Optional[str]:
    if v is None:
        return None
    if not isinstance(v, str):
        raise fail(TYPE, too_long or "Expected a string")
    if max_len is not None and len(v) > max_len:
        raise fail(MAX_LENGTH, too_long or f"Too long (max {max_len} characters)")
    return v.strip()


def int_in_range(v: Any, lo: int, hi: int, message: str) -> int:
    # bool is an int subclass; true/false are not counts
    if isinstance(v, bool):
        raise fail(RANGE, message)
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    if not isinstance(v, int) or v < lo or v > hi:
        raise fail(RANGE, message)
    return v


def one_of(v: Any, choices: Iterable[str], message: str) -> str:
    if is_blank(v):
        raise fail(REQUIRED, message)
    if not isinstance(v, str) or v.strip() not in set(choices):
        raise fail(CHOICE, message)
    return v.strip()
