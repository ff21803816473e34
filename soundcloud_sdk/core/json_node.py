"""JSON Node — exception-free navigation over a decoded JSON document.

Invariants:
    - Indexing never raises: a wrong index type, out-of-range index or missing key
      yields the empty node (is_empty is True)
    - Negative integer indices are out of range (no Python wrap-around)
    - Every typed accessor returns None on type mismatch, on null and on the empty node
    - as_int / as_uint64 / as_double never accept booleans
    - as_url is the one accessor that raises: MissingClientIdentifierError when the
      node holds a string and no client identifier is configured

Design Decisions:
    - Empty is a distinct sentinel from JSON null: node["a"] on {"a": null} is null, not empty
    - NodeContext carries the client identifier and formatter cache explicitly; child
      nodes inherit their parent's context
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator, TypeVar

import httpx

from soundcloud_sdk.core.date_formats import DateFormatterCache, shared_formatters
from soundcloud_sdk.core.errors import MissingClientIdentifierError

T = TypeVar("T")

CLIENT_ID_PARAMETER = "client_id"
_UINT64_MAX = 2 ** 64 - 1


class _Missing:
    """Marker for the empty node's value."""

    def __repr__(self) -> str:
        return "<empty>"


_MISSING = _Missing()


@dataclass(frozen=True)
class NodeContext:
    """Per-process values needed by URL and date extraction."""
    client_identifier: str | None = None
    date_formatters: DateFormatterCache = field(default=shared_formatters)


def append_client_identifier(url: httpx.URL, client_identifier: str | None) -> httpx.URL:
    """Return url with the client_id query parameter set."""
    if not client_identifier:
        raise MissingClientIdentifierError()
    return url.copy_set_param(CLIENT_ID_PARAMETER, client_identifier)


class JSONNode:
    """One position in a decoded JSON tree."""

    __slots__ = ("_value", "_context")

    def __init__(self, value: Any = _MISSING, context: NodeContext | None = None):
        self._value = value
        self._context = context or NodeContext()

    @classmethod
    def empty(cls, context: NodeContext | None = None) -> "JSONNode":
        return cls(_MISSING, context)

    def _child(self, value: Any) -> "JSONNode":
        return JSONNode(value, self._context)

    # ─── Navigation ─────────────────────────────────────────────

    def __getitem__(self, index: int | str) -> "JSONNode":
        value = self._value
        if isinstance(index, bool):
            return self._child(_MISSING)
        if isinstance(index, int):
            if isinstance(value, list) and 0 <= index < len(value):
                return self._child(value[index])
            return self._child(_MISSING)
        if isinstance(index, str) and isinstance(value, dict) and index in value:
            return self._child(value[index])
        return self._child(_MISSING)

    def __iter__(self) -> Iterator["JSONNode"]:
        """Iterate child nodes of a list; other values yield nothing."""
        if isinstance(self._value, list):
            for item in self._value:
                yield self._child(item)

    def __repr__(self) -> str:
        return f"JSONNode({self._value!r})"

    @property
    def is_empty(self) -> bool:
        return self._value is _MISSING

    @property
    def is_null(self) -> bool:
        return self._value is None

    @property
    def any_value(self) -> Any:
        """The raw decoded value; None for null and for the empty node."""
        return None if self._value is _MISSING else self._value

    @property
    def context(self) -> NodeContext:
        return self._context

    def keys(self) -> list[str]:
        if isinstance(self._value, dict):
            return list(self._value)
        return []

    # ─── Typed extraction ───────────────────────────────────────

    def as_int(self) -> int | None:
        value = self._value
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return None

    def as_uint64(self) -> int | None:
        value = self.as_int()
        if value is not None and 0 <= value <= _UINT64_MAX:
            return value
        return None

    def as_double(self) -> float | None:
        value = self._value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return None

    def as_bool(self) -> bool | None:
        return self._value if isinstance(self._value, bool) else None

    def as_string(self) -> str | None:
        return self._value if isinstance(self._value, str) else None

    def as_url(self) -> httpx.URL | None:
        """Absolute URL with client_id appended; None unless the node is a URL string."""
        text = self.as_string()
        if text is None:
            return None
        client_identifier = self._context.client_identifier
        if not client_identifier:
            raise MissingClientIdentifierError()
        try:
            url = httpx.URL(text)
        except httpx.InvalidURL:
            return None
        if not url.scheme or not url.host:
            return None
        return append_client_identifier(url, client_identifier)

    def as_date(self, pattern: str) -> datetime | None:
        text = self.as_string()
        if text is None:
            return None
        return self._context.date_formatters.get(pattern).parse(text)

    def as_array(self, mapping: Callable[["JSONNode"], T | None]) -> list[T] | None:
        """Filtering map over a list: children mapped to None are dropped."""
        if not isinstance(self._value, list):
            return None
        mapped = (mapping(child) for child in self)
        return [item for item in mapped if item is not None]

    def map(self, f: Callable[["JSONNode"], T]) -> list[T] | None:
        """Map every child of a list; None when the node is not a list."""
        if not isinstance(self._value, list):
            return None
        return [f(child) for child in self]

    def flat_map(self, f: Callable[["JSONNode"], T | None]) -> list[T] | None:
        return self.as_array(f)
