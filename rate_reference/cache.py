"""TTL cache for CMS dataset row-sets"""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import structlog

from rate_reference.config import settings
from rate_reference.schemas.rates import NATIONAL, RawRateRow

logger = structlog.get_logger()


@dataclass(frozen=True)
class CacheKey:
    """Lookup key: billing code plus state code or the national sentinel"""
    code: str
    region: str = NATIONAL

    @classmethod
    def for_lookup(cls, code: str, region: Optional[str] = None) -> "CacheKey":
        region = (region or "").strip()
        if not region or region.lower() == NATIONAL:
            return cls(code=code, region=NATIONAL)
        return cls(code=code, region=region.upper())

    @property
    def is_national(self) -> bool:
        return self.region == NATIONAL

    def __str__(self) -> str:
        return f"{self.code}-{self.region}"


@dataclass
class CacheEntry:
    """Rows fetched for one key and when they were fetched"""
    rows: List[RawRateRow] = field(default_factory=list)
    fetched_at: float = 0.0

    def is_valid(self, now: float, ttl_seconds: float) -> bool:
        return now - self.fetched_at < ttl_seconds


class CacheStatus(str, Enum):
    ABSENT = "absent"
    EXPIRED = "expired"
    VALID = "valid"


class TTLCacheStore:
    """
    In-memory row cache with time-based staleness and an LRU capacity bound.

    Expired entries are not purged on read; they report EXPIRED and are
    replaced by the next put for the same key.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_items: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self.max_items = max_items if max_items is not None else settings.cache_max_items
        self.clock = clock
        self._entries: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.expired = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Get the stored entry for key, valid or not"""
        entry = self._entries.get(key)
        if entry is None:
            return None
        self._entries.move_to_end(key)
        return CacheEntry(rows=list(entry.rows), fetched_at=entry.fetched_at)

    def lookup(self, key: CacheKey) -> Tuple[CacheStatus, Optional[CacheEntry]]:
        """Classify key as absent, expired or valid"""
        entry = self.get(key)
        if entry is None:
            self.misses += 1
            return CacheStatus.ABSENT, None

        if not entry.is_valid(self.clock(), self.ttl_seconds):
            self.expired += 1
            logger.debug("Cache entry expired", key=str(key), fetched_at=entry.fetched_at)
            return CacheStatus.EXPIRED, entry

        self.hits += 1
        return CacheStatus.VALID, entry

    def put(self, key: CacheKey, rows: List[RawRateRow], now: Optional[float] = None):
        """Store rows for key, evicting least recently used entries at capacity"""
        if key in self._entries:
            del self._entries[key]

        while len(self._entries) >= self.max_items:
            evicted, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug("Cache entry evicted", key=str(evicted))

        fetched_at = self.clock() if now is None else now
        self._entries[key] = CacheEntry(rows=list(rows), fetched_at=fetched_at)

    def purge_expired(self) -> int:
        """Remove expired entries, returning how many were dropped"""
        now = self.clock()
        expired_keys = [
            key for key, entry in self._entries.items()
            if not entry.is_valid(now, self.ttl_seconds)
        ]

        for key in expired_keys:
            del self._entries[key]

        if expired_keys:
            logger.info("Purged expired cache entries", count=len(expired_keys))
        return len(expired_keys)

    def clear(self):
        """Clear all entries"""
        self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        return {
            'items': len(self._entries),
            'max_items': self.max_items,
            'ttl_seconds': self.ttl_seconds,
            'hits': self.hits,
            'misses': self.misses,
            'expired': self.expired,
            'evictions': self.evictions,
        }
