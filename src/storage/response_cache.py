# src/storage/response_cache.py

"""Short-lived in-memory cache of parse responses."""

import logging
import threading
import time
from dataclasses import dataclass

from src.config.settings import Settings
from src.models.parse_response import ParseResponse

logger = logging.getLogger("kaspi_catalog.cache")


@dataclass
class CacheEntry:
    """A cached response and the instant it stops being served."""

    payload: ParseResponse
    expires_at: float


def make_cache_key(normalized_url: str, count: int) -> str:
    """Key responses on the normalised URL and the requested count."""
    return f"{normalized_url}::{count}"


class ResponseCache:
    """Server-side cache that absorbs bursts of identical requests.

    Entries live for ``SERVER_CACHE_TTL`` seconds, long enough to absorb
    repeated identical requests, not to act as a catalogue store.
    Expired entries are ignored on lookup and overwritten on the next
    store; nothing sweeps them.  There is no size bound.
    """

    def __init__(self, ttl: float | None = None) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._ttl: float = (
            Settings.SERVER_CACHE_TTL if ttl is None else ttl
        )
        self._lock = threading.Lock()

    def get(self, key: str) -> ParseResponse | None:
        """Return the cached response for *key*, or ``None`` on miss."""
        now = time.time()
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if now >= entry.expires_at:
            logger.debug("Cache entry expired for %s", key)
            return None
        logger.info(
            "Cache hit for %s (%d products)",
            key,
            len(entry.payload.products),
        )
        return entry.payload

    def store(self, key: str, payload: ParseResponse) -> None:
        """Store *payload* under *key*, replacing any previous entry."""
        entry = CacheEntry(
            payload=payload, expires_at=time.time() + self._ttl
        )
        with self._lock:
            self._entries[key] = entry
        logger.info(
            "Cached %d products for %s (ttl=%.0fs)",
            len(payload.products),
            key,
            self._ttl,
        )

    def clear(self) -> int:
        """Purge all cached entries.

        Returns the number of entries that were removed.
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Response cache purged (%d entries removed)", count)
        return count
