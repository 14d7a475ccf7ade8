"""In-memory TTL cache for search results and finished analyses."""

import time
from collections.abc import Callable
from typing import Any

# 1 hour
DEFAULT_TTL_SECONDS = 60 * 60


class TTLCache:
    """
    Simple keyed cache with a fixed time-to-live per entry.

    Keys are built from a service name and a query; queries are
    lowercased and stripped so "Diabetes " and "diabetes" share an entry.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, float, Any]] = {}

    @staticmethod
    def _key(service: str, query: str) -> str:
        return f"{service}:{query.lower().strip()}"

    def get(self, service: str, query: str) -> Any | None:
        """Return cached data, or None on a miss or an expired entry."""
        key = self._key(service, query)
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, ttl, data = entry
        if self._clock() - stored_at > ttl:
            del self._entries[key]
            return None
        return data

    def set(self, service: str, query: str, data: Any, ttl: float | None = None) -> None:
        self._entries[self._key(service, query)] = (
            self._clock(),
            ttl if ttl is not None else self.ttl_seconds,
            data,
        )

    def clear(self, service: str | None = None, query: str | None = None) -> None:
        """Clear one entry when service and query are given, else everything."""
        if service and query:
            self._entries.pop(self._key(service, query), None)
        else:
            self._entries.clear()

    def stats(self) -> dict:
        return {
            "size": len(self._entries),
            "entries": list(self._entries),
        }
