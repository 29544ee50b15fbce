"""
Hierarchical keys for the client query cache.

A key is a tuple of tokens: namespace, sub-namespace, qualifier, parameters.
Keys are built only from the functions here so that equal inputs always give
equal tuples, and invalidating a prefix reaches every key below it.

    >>> tables.detail("vocabulary_words", "42")
    ('tables', 'vocabulary_words', 'detail', '42')
    >>> matches(tables.detail("vocabulary_words", "42"), tables.table("vocabulary_words"))
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

Key = Tuple[Any, ...]


@dataclass(frozen=True)
class _Flag:
    """A bool inside a key; bare True and False compare equal to 1 and 0."""

    value: bool


def _freeze(value: Any) -> Any:
    if isinstance(value, bool):
        return _Flag(value)
    if isinstance(value, Params):
        return value
    if isinstance(value, Mapping):
        return Params.of(value)
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted((_freeze(v) for v in value), key=repr))
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, _Flag):
        return value.value
    if isinstance(value, Params):
        return value.as_dict()
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class Params:
    """Hashable parameter mapping, keys sorted, nested values frozen."""

    items: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, mapping: Optional[Mapping[str, Any]]) -> "Params":
        if isinstance(mapping, Params):
            return mapping
        return cls(tuple(sorted((str(k), _freeze(v)) for k, v in (mapping or {}).items())))

    def as_dict(self) -> Dict[str, Any]:
        return {k: _thaw(v) for k, v in self.items}

    def __repr__(self) -> str:
        return f"Params({self.as_dict()!r})"


class AuthKeys:
    ALL: Key = ("auth",)

    def session(self) -> Key:
        return (*self.ALL, "session")

    def user(self) -> Key:
        return (*self.ALL, "user")

    def profile(self, user_id: str) -> Key:
        return (*self.ALL, "profile", user_id)


class TableKeys:
    ALL: Key = ("tables",)

    def table(self, table: str) -> Key:
        return (*self.ALL, table)

    def list(self, table: str) -> Key:
        return (*self.table(table), "list")

    def detail(self, table: str, row_id: str) -> Key:
        return (*self.table(table), "detail", row_id)

    def filtered(self, table: str, filters: Mapping[str, Any]) -> Key:
        return (*self.table(table), "filtered", Params.of(filters))

    def paginated(self, table: str, page: int, limit: int) -> Key:
        return (*self.table(table), "paginated", page, limit)


class DocumentKeys:
    def all(self) -> Key:
        return tables.table("documents")

    def list(self, filters: Optional[Mapping[str, Any]] = None) -> Key:
        if filters:
            return (*self.all(), "list", Params.of(filters))
        return (*self.all(), "list")

    def detail(self, doc_id: str) -> Key:
        return (*self.all(), "detail", doc_id)

    def current(self) -> Key:
        return (*self.all(), "current")


class AnalyticsKeys:
    ALL: Key = ("analytics",)

    def dashboard(self) -> Key:
        return (*self.ALL, "dashboard")

    def user_stats(self, user_id: str) -> Key:
        return (*self.ALL, "user-stats", user_id)

    def activity(self, user_id: str, period: str) -> Key:
        return (*self.ALL, "activity", user_id, period)


class StorageKeys:
    ALL: Key = ("storage",)

    def bucket(self, bucket: str) -> Key:
        return (*self.ALL, bucket)

    def file(self, bucket: str, path: str) -> Key:
        return (*self.bucket(bucket), path)

    def list(self, bucket: str, folder: Optional[str] = None) -> Key:
        if folder:
            return (*self.bucket(bucket), "list", folder)
        return (*self.bucket(bucket), "list")


class ApiKeys:
    ALL: Key = ("api",)

    def endpoint(self, endpoint: str) -> Key:
        return (*self.ALL, endpoint)

    def with_params(self, endpoint: str, params: Mapping[str, Any]) -> Key:
        return (*self.endpoint(endpoint), Params.of(params))


auth = AuthKeys()
tables = TableKeys()
documents = DocumentKeys()
analytics = AnalyticsKeys()
storage = StorageKeys()
api = ApiKeys()


# ---- factories ----

@dataclass(frozen=True)
class TableKeySet:
    name: str

    def all(self) -> Key:
        return tables.table(self.name)

    def list(self, filters: Optional[Mapping[str, Any]] = None) -> Key:
        return tables.filtered(self.name, filters) if filters else tables.list(self.name)

    def detail(self, row_id: str) -> Key:
        return tables.detail(self.name, row_id)

    def paginated(self, page: int, limit: int) -> Key:
        return tables.paginated(self.name, page, limit)


@dataclass(frozen=True)
class PrefixedKeySet:
    prefix: Key

    def all(self) -> Key:
        return self.prefix

    def list(self, filters: Optional[Mapping[str, Any]] = None) -> Key:
        if filters:
            return (*self.prefix, "list", Params.of(filters))
        return (*self.prefix, "list")

    def detail(self, item_id: str) -> Key:
        return (*self.prefix, "detail", item_id)

    def custom(self, *parts: Any) -> Key:
        return (*self.prefix, *(_freeze(p) for p in parts))


def table_keys(table: str) -> TableKeySet:
    return TableKeySet(table)


def prefixed_keys(prefix: Sequence[Any]) -> PrefixedKeySet:
    return PrefixedKeySet(tuple(_freeze(p) for p in prefix))


# ---- utilities ----

def _index(key: Sequence[Any], marker: str) -> int:
    for i, token in enumerate(key):
        if isinstance(token, str) and token == marker:
            return i
    return -1


def get_base_key(key: Sequence[Any]) -> Key:
    """Key truncated after its first 'detail' marker, else its first 'list' marker."""
    for marker in ("detail", "list"):
        i = _index(key, marker)
        if i > 0:
            return tuple(key[: i + 1])
    return tuple(key)


def matches(key: Sequence[Any], pattern: Sequence[Any]) -> bool:
    """True when pattern is a prefix of key."""
    if len(pattern) > len(key):
        return False
    return tuple(key[: len(pattern)]) == tuple(pattern)


def get_table_name(key: Sequence[Any]) -> Optional[str]:
    i = _index(key, "tables")
    if i >= 0 and i + 1 < len(key):
        return key[i + 1]
    return None


def get_id(key: Sequence[Any]) -> Optional[str]:
    i = _index(key, "detail")
    if i >= 0 and i + 1 < len(key):
        return key[i + 1]
    return None
