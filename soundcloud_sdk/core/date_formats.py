"""Date Formatter Cache — process-wide table of compiled date patterns.

Invariants:
    - One DateFormatter per distinct pattern string, created lazily on first use
    - Entries are never evicted (the set of patterns is fixed by the SDK's parsers)
    - Concurrent lookups and inserts are safe (lock around insert, lock-free hit path)
    - DateFormatter.parse() never raises: unparseable input, or a pattern with
      unsupported letters, yields None

Design Decisions:
    - Patterns use the API's Unicode/ICU letters ("yyyy/MM/dd HH:mm:ss Z");
      a pattern containing "%" is taken as a strptime format unchanged
    - compile_pattern() rejects unknown letters with ValueError; DateFormatter keeps
      such a pattern cached as one that parses nothing
    - Zone names (z, zzz) map to %Z, which accepts UTC, GMT and the local zone names
"""

import logging
import re
import threading
from datetime import datetime

logger = logging.getLogger(__name__)

# Longest tokens first so "MMMM" wins over "MM".
_ICU_TOKENS: list[tuple[str, str]] = [
    ("yyyy", "%Y"), ("yy", "%y"),
    ("MMMM", "%B"), ("MMM", "%b"), ("MM", "%m"), ("M", "%m"),
    ("dd", "%d"), ("d", "%d"),
    ("EEEE", "%A"), ("EEE", "%a"),
    ("HH", "%H"), ("H", "%H"), ("hh", "%I"), ("h", "%I"),
    ("mm", "%M"), ("m", "%M"),
    ("ss", "%S"), ("s", "%S"),
    ("SSSSSS", "%f"), ("SSS", "%f"), ("SS", "%f"), ("S", "%f"),
    ("a", "%p"),
    ("VVVV", "%z"), ("ZZZZZ", "%z"), ("ZZZ", "%z"), ("ZZ", "%z"), ("Z", "%z"),
    ("XXX", "%z"), ("XX", "%z"), ("X", "%z"), ("xxx", "%z"), ("xx", "%z"),
    ("zzzz", "%Z"), ("zzz", "%Z"), ("z", "%Z"),
]
_TOKEN_RE = re.compile(
    "|".join(re.escape(token) for token, _ in _ICU_TOKENS)
    + r"|'[^']*'|[A-Za-z]|[^A-Za-z']+",
)
_TOKEN_MAP = dict(_ICU_TOKENS)


def compile_pattern(pattern: str) -> str:
    """Translate an ICU date pattern into a strptime format string."""
    if "%" in pattern:
        return pattern
    parts = []
    for token in _TOKEN_RE.findall(pattern):
        if token in _TOKEN_MAP:
            parts.append(_TOKEN_MAP[token])
        elif token.startswith("'"):
            parts.append(token[1:-1] or "'")
        elif token.isalpha():
            raise ValueError(f"Unsupported date pattern letter {token!r} in {pattern!r}")
        else:
            parts.append(token)
    return "".join(parts)


class DateFormatter:
    """A compiled date pattern."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        try:
            self.strptime_format: str | None = compile_pattern(pattern)
        except ValueError as e:
            logger.warning(f"Date pattern cannot be compiled: {e}")
            self.strptime_format = None

    def parse(self, text: str) -> datetime | None:
        if self.strptime_format is None:
            return None
        try:
            return datetime.strptime(text, self.strptime_format)
        except ValueError:
            return None


class DateFormatterCache:
    """Concurrent pattern -> DateFormatter lookup table, no eviction."""

    def __init__(self):
        self._formatters: dict[str, DateFormatter] = {}
        self._lock = threading.Lock()

    def get(self, pattern: str) -> DateFormatter:
        formatter = self._formatters.get(pattern)
        if formatter is not None:
            return formatter
        with self._lock:
            formatter = self._formatters.get(pattern)
            if formatter is None:
                formatter = DateFormatter(pattern)
                self._formatters[pattern] = formatter
            return formatter

    def __len__(self) -> int:
        return len(self._formatters)

    def __contains__(self, pattern: str) -> bool:
        return pattern in self._formatters


# Shared by every context that does not bring its own cache.
shared_formatters = DateFormatterCache()
