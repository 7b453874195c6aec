from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping


@dataclass(slots=True)
class CacheEntry:
    value: Any
    stored_at: float


@dataclass(slots=True)
class CacheSnapshot:
    key: str
    stored_at: float
    age_seconds: float
    value_type: str
    expired: bool


def request_key(endpoint: str, params: Mapping[str, Any] | None = None) -> str:
    """Canonical request signature: endpoint followed by its parameters sorted by name."""
    if not params:
        return endpoint
    query = "&".join(f"{name}={params[name]}" for name in sorted(params))
    return f"{endpoint}?{query}"


class ResponseCache:
    """
    Short-TTL memoization of upstream responses keyed by request signature.

    Expired entries are kept rather than evicted so the fetcher can fall back to
    the last known good payload when a live call fails. Entries only go away on
    ``clear()`` or process restart.
    """

    def __init__(
        self,
        ttl_seconds: float | None = 60.0,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock or time.time
        self._store: Dict[str, CacheEntry] = {}

    @property
    def ttl_seconds(self) -> float | None:
        return self._ttl_seconds

    def get(self, key: str) -> tuple[Any | None, bool]:
        entry = self._store.get(key)
        if entry is None or self._is_expired(entry):
            return None, False
        return entry.value, True

    def get_stale(self, key: str) -> tuple[Any | None, bool]:
        entry = self._store.get(key)
        if entry is None:
            return None, False
        return entry.value, True

    def put(self, key: str, value: Any) -> None:
        # last writer wins when two fetches for the same key race
        self._store[key] = CacheEntry(value=value, stored_at=self._clock())

    def clear(self) -> None:
        self._store.clear()

    def size(self) -> int:
        return len(self._store)

    def snapshot(self) -> List[CacheSnapshot]:
        now = self._clock()
        return [
            CacheSnapshot(
                key=key,
                stored_at=entry.stored_at,
                age_seconds=now - entry.stored_at,
                value_type=type(entry.value).__name__,
                expired=self._is_expired(entry),
            )
            for key, entry in list(self._store.items())
        ]

    def _is_expired(self, entry: CacheEntry) -> bool:
        if self._ttl_seconds is None or math.isinf(self._ttl_seconds):
            return False
        return (self._clock() - entry.stored_at) >= self._ttl_seconds


__all__ = ["CacheEntry", "CacheSnapshot", "ResponseCache", "request_key"]
