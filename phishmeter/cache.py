"""In-memory TTL caching for PhishMeter.

The evaluation core is stateless; callers that want to skip re-scanning a
domain they saw a moment ago keep results here.

Supports:
- Manager-wide TTL
- Namespaced keys
- Age-based eviction sweeps
- Thread-safe operations
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from .analyzer.models import Analysis
from .constants import CACHE_FRESHNESS_SECONDS, CACHE_MAX_AGE_SECONDS
from .utils.domains import extract_hostname

logger = logging.getLogger(__name__)


class CacheEntry:
    """Represents a cached value with timestamp."""

    __slots__ = ("value", "timestamp")

    def __init__(self, value: Any, timestamp: float):
        self.value = value
        self.timestamp = timestamp

    def age(self, now: float) -> float:
        return now - self.timestamp

    def is_expired(self, ttl_seconds: int, now: float) -> bool:
        """Check if this entry has expired."""
        return self.age(now) >= ttl_seconds


class CacheManager:
    """
    Thread-safe memory cache with TTL.

    Usage:
        cache = CacheManager(ttl_seconds=3600, namespace="analysis")
        cache.set("example.com", result)
        cached = cache.get("example.com")
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        namespace: str = "",
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace
        self._clock = clock
        self._memory: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def _make_key(self, key: str) -> str:
        """Generate full cache key with namespace."""
        if self.namespace:
            return f"{self.namespace}:{key}"
        return key

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry (value plus timestamp), dropping it if expired."""
        full_key = self._make_key(key)
        with self._lock:
            entry = self._memory.get(full_key)
            if entry is None:
                return None
            if entry.is_expired(self.ttl_seconds, self._clock()):
                del self._memory[full_key]
                return None
            return entry

    def get(self, key: str) -> Optional[Any]:
        """Get cached value if it exists and has not expired."""
        entry = self.get_entry(key)
        return entry.value if entry else None

    def set(self, key: str, value: Any) -> None:
        """Set cached value."""
        entry = CacheEntry(value=value, timestamp=self._clock())
        with self._lock:
            self._memory[self._make_key(key)] = entry

    def purge_older_than(self, max_age_seconds: float) -> int:
        """Evict entries older than max_age_seconds (or already expired). Returns count."""
        now = self._clock()
        with self._lock:
            stale = [
                k
                for k, entry in self._memory.items()
                if entry.age(now) > max_age_seconds or entry.is_expired(self.ttl_seconds, now)
            ]
            for k in stale:
                del self._memory[k]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._memory)


class AnalysisCache:
    """Analyses keyed by hostname.

    Entries are served while fresh (5 minutes by default) and kept around
    until the cleanup sweep drops anything older than the max age (24 hours).
    """

    def __init__(
        self,
        freshness_seconds: int = CACHE_FRESHNESS_SECONDS,
        max_age_seconds: int = CACHE_MAX_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.freshness_seconds = freshness_seconds
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._cache = CacheManager(ttl_seconds=max_age_seconds, namespace="analysis", clock=clock)

    @staticmethod
    def key_for(url_or_domain: str) -> str:
        return extract_hostname(url_or_domain) or (url_or_domain or "").strip().lower()

    def get_fresh(self, url_or_domain: str) -> Optional[Analysis]:
        """Cached analysis younger than the freshness window, else None."""
        entry = self._cache.get_entry(self.key_for(url_or_domain))
        if entry is None or entry.age(self._clock()) >= self.freshness_seconds:
            return None
        return entry.value

    def get_any(self, url_or_domain: str) -> Optional[Analysis]:
        """Cached analysis of any age up to the max age."""
        return self._cache.get(self.key_for(url_or_domain))

    def put(self, analysis: Analysis) -> None:
        if not analysis.domain:
            return
        self._cache.set(self.key_for(analysis.domain), analysis)

    def cleanup(self) -> int:
        removed = self._cache.purge_older_than(self.max_age_seconds)
        logger.info("Analysis cache cleaned up (%s removed, %s kept)", removed, len(self._cache))
        return removed

    def __len__(self) -> int:
        return len(self._cache)
