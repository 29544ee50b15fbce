"""
Client-side query cache with retry policies.

A QueryCache is an ordinary object: whoever builds it owns it, and nothing is
shared between two caches.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, TypeVar

from . import config
from .query_keys import Key, matches

logger = logging.getLogger(__name__)

T = TypeVar("T")


def status_of(error: BaseException) -> Optional[int]:
    """HTTP status carried by an error, if any."""
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int
    cap_ms: int
    base_ms: int = config.RETRY_BASE_MS

    @classmethod
    def for_queries(cls) -> "RetryPolicy":
        return cls(config.QUERY_MAX_RETRIES, config.QUERY_RETRY_CAP_MS)

    @classmethod
    def for_mutations(cls) -> "RetryPolicy":
        return cls(config.MUTATION_MAX_RETRIES, config.MUTATION_RETRY_CAP_MS)

    def should_retry(self, failure_count: int, error: BaseException) -> bool:
        """failure_count is the number of failures before this one."""
        status = status_of(error)
        if status is not None and 400 <= status < 500:
            return False
        return failure_count < self.max_retries

    def delay_ms(self, attempt: int) -> int:
        return min(self.base_ms * 2**attempt, self.cap_ms)

    def run(self, fn: Callable[[], T], sleep: Callable[[float], None] = time.sleep) -> T:
        failures = 0
        while True:
            try:
                return fn()
            except Exception as e:
                if not self.should_retry(failures, e):
                    raise
                delay = self.delay_ms(failures)
                failures += 1
                logger.warning(f"Request failed ({failures}/{self.max_retries}): {e}. Retrying in {delay}ms")
                sleep(delay / 1000.0)


@dataclass
class _Entry:
    value: Any
    updated_at: float


class QueryCache:
    def __init__(
        self,
        stale_time_ms: int = config.CACHE_STALE_MS,
        gc_time_ms: int = config.CACHE_GC_MS,
        query_retry: Optional[RetryPolicy] = None,
        mutation_retry: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.stale_time_ms = stale_time_ms
        self.gc_time_ms = gc_time_ms
        self.query_retry = query_retry or RetryPolicy.for_queries()
        self.mutation_retry = mutation_retry or RetryPolicy.for_mutations()
        self._clock = clock
        self._sleep = sleep
        self._entries: Dict[Key, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _age_ms(self, entry: _Entry) -> float:
        return (self._clock() - entry.updated_at) * 1000.0

    def _collect(self) -> None:
        expired = [k for k, e in self._entries.items() if self._age_ms(e) >= self.gc_time_ms]
        for k in expired:
            del self._entries[k]

    def get(self, key: Key) -> Optional[Any]:
        self._collect()
        entry = self._entries.get(tuple(key))
        return entry.value if entry else None

    def is_fresh(self, key: Key) -> bool:
        entry = self._entries.get(tuple(key))
        return entry is not None and self._age_ms(entry) < self.stale_time_ms

    def set(self, key: Key, value: Any) -> None:
        self._entries[tuple(key)] = _Entry(value, self._clock())

    def invalidate(self, prefix: Sequence[Any]) -> int:
        """Drop every entry whose key starts with prefix; returns how many."""
        doomed = [k for k in self._entries if matches(k, prefix)]
        for k in doomed:
            del self._entries[k]
        if doomed:
            logger.info(f"Invalidated {len(doomed)} cached queries under {tuple(prefix)!r}")
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> Tuple[Key, ...]:
        self._collect()
        return tuple(self._entries)

    def fetch(self, key: Key, fn: Callable[[], T]) -> T:
        """Cached value while fresh; otherwise fn() under the query retry policy."""
        self._collect()
        if self.is_fresh(key):
            return self._entries[tuple(key)].value
        value = self.query_retry.run(fn, self._sleep)
        self.set(key, value)
        return value

    def mutate(self, fn: Callable[[], T], invalidates: Sequence[Sequence[Any]] = ()) -> T:
        """Run a write under the mutation retry policy, then drop the affected prefixes."""
        result = self.mutation_retry.run(fn, self._sleep)
        for prefix in invalidates:
            self.invalidate(prefix)
        return result
