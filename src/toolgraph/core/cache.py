"""Output cache for capability invocations.

Entries are keyed by (tool name, resolved input) and expire once more than
``ttl_ms`` milliseconds have passed since insertion. Expiry is checked
lazily on lookup against an injectable clock, so no timers accumulate and
tests can move time forward explicitly.

Cache keys ignore the caller: two callers issuing the same
tool call within the TTL share one entry.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from toolgraph.core.types import Output

CacheKey = tuple[str, str]


@dataclass(frozen=True)
class CacheEntry:
    """A cached output and when it was stored.

    Attributes:
        output: The raw capability output.
        inserted_at: Clock reading (seconds) at insertion.
    """

    output: Output
    inserted_at: float

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.inserted_at > ttl_seconds


def make_key(tool_name: str, input: str) -> CacheKey:
    """Build the cache key for a tool call."""
    return (tool_name, input)


class OutputCache:
    """TTL cache of capability outputs.

    All operations are synchronous, so concurrent asyncio tasks never
    observe a half-applied insert or eviction.

    Args:
        ttl_ms: Time-to-live in milliseconds.
        clock: Monotonic clock returning seconds. Defaults to time.monotonic.

    Example:
        >>> cache = OutputCache(ttl_ms=60_000)
        >>> cache.put("Echo", "hi", Output(result="hi"))
        >>> cache.get("Echo", "hi")
        Output(result='hi')
    """

    def __init__(self, ttl_ms: int = 60_000, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be > 0")
        self._ttl_seconds = ttl_ms / 1000.0
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    @property
    def ttl_ms(self) -> int:
        return int(self._ttl_seconds * 1000)

    def get(self, tool_name: str, input: str) -> Output | None:
        """Look up a live entry.

        Expired entries are evicted on the way.

        Returns:
            The cached output, or None on a miss.
        """
        key = make_key(tool_name, input)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if entry.is_expired(self._clock(), self._ttl_seconds):
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.output

    def put(self, tool_name: str, input: str, output: Output) -> None:
        """Store an output, replacing any previous entry for the key."""
        self._entries[make_key(tool_name, input)] = CacheEntry(output=output, inserted_at=self._clock())

    def invalidate(self, tool_name: str, input: str) -> bool:
        """Drop one entry.

        Returns:
            True if an entry was removed.
        """
        return self._entries.pop(make_key(tool_name, input), None) is not None

    def purge_expired(self) -> int:
        """Evict every expired entry.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now, self._ttl_seconds)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        """Remove all entries and reset counters."""
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and not entry.is_expired(self._clock(), self._ttl_seconds)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"OutputCache(ttl_ms={self.ttl_ms}, entries={len(self._entries)})"
