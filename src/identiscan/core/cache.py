"""
Result Cache - TTL memoization of final scan results.

Entries are keyed by the query plus a canonical JSON rendering of the scan
options. Expiry is lazy: a stale entry is dropped when a read observes it,
there is no background sweep and no size bound.
"""

import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import structlog

from ..adapters.base_adapter import Finding


@dataclass(frozen=True)
class CacheEntry:
    results: tuple
    written_at: float


class ResultCache:
    """
    Time-bounded store of fused result lists.

    Example:
        >>> cache = ResultCache(ttl=3600)
        >>> cache.set("octocat", {}, findings)
        >>> cache.get("octocat", {})  # the same findings, until the TTL elapses
    """

    def __init__(self, ttl: float = 3600.0, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the cache.

        Args:
            ttl: Seconds an entry stays live
            clock: Time source in seconds
        """
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

        self.hits = 0
        self.misses = 0

        self.logger = structlog.get_logger(__name__)

    @staticmethod
    def make_key(query: str, options: Optional[Dict[str, Any]] = None) -> str:
        return f"{query}:{json.dumps(options or {}, sort_keys=True, default=str)}"

    def get(self, query: str, options: Optional[Dict[str, Any]] = None) -> Optional[List[Finding]]:
        """
        Look up a live entry.

        Returns:
            A copy of the cached result list, or None on miss or expiry
        """
        key = self.make_key(query, options)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() - entry.written_at >= self.ttl:
                del self._entries[key]
                self.logger.debug("cache_entry_expired", key=key)
                entry = None

            if entry is None:
                self.misses += 1
                return None

            self.hits += 1
            return list(entry.results)

    def set(self, query: str, options: Optional[Dict[str, Any]], results: List[Finding]):
        """Store a result list, overwriting any previous entry."""
        key = self.make_key(query, options)
        with self._lock:
            self._entries[key] = CacheEntry(results=tuple(results), written_at=self._clock())

        self.logger.debug("cache_entry_written", key=key, results=len(results))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        return {"entries": len(self), "hits": self.hits, "misses": self.misses, "ttl": self.ttl}
