# src/storage/query_cache.py

"""In-memory TTL cache for serialised result pages."""

import copy
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from src.config.settings import Settings

logger = logging.getLogger("retail_radar.cache")


@dataclass
class CacheEntry:
    """A cached value and the moment it stops being served."""

    value: Any
    expires_at: float


class ResultCache:
    """Key/value store whose entries expire after a per-entry TTL.

    Values are deep-copied on the way in and out so callers can never
    mutate a cached page in place.
    """

    def __init__(
        self,
        default_ttl: float = Settings.CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._clock = clock

    def get(self, key: str) -> Any | None:
        """Return the live value for *key*, or ``None`` on miss."""
        self._evict_expired(self._clock())
        entry = self._entries.get(key)
        if entry is None:
            return None
        logger.debug("Cache hit for %s", key)
        return copy.deepcopy(entry.value)

    def set(
        self, key: str, value: Any, ttl_seconds: float | None = None,
    ) -> None:
        """Store *value* under *key* for ``ttl_seconds``."""
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(
            value=copy.deepcopy(value),
            expires_at=self._clock() + ttl,
        )
        logger.info("Cached %s for %.0fs", key, ttl)

    def clear(self) -> int:
        """Purge all cached entries.

        Returns the number of entries that were removed.
        """
        count = len(self._entries)
        self._entries.clear()
        logger.info("Cache manually purged (%d entries removed)", count)
        return count

    def __len__(self) -> int:
        self._evict_expired(self._clock())
        return len(self._entries)

    def _evict_expired(self, now: float) -> None:
        """Remove entries whose TTL has elapsed."""
        expired = [
            key for key, entry in self._entries.items()
            if now >= entry.expires_at
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Evicted %d expired cache entries", len(expired))
