# src/services/parse_service.py

"""Request pipeline: validate, rate-limit, cache, fetch, extract, assemble."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from src.config.settings import Settings
from src.filters.url_validator import clamp_count, validate_url
from src.models.parse_response import ParseResponse
from src.models.product import ProductRecord
from src.scrapers.base_scraper import BaseScraper
from src.scrapers.kaspi_scraper import KaspiScraper
from src.services.rate_limiter import RateLimiter
from src.storage.response_cache import ResponseCache, make_cache_key

logger = logging.getLogger("kaspi_catalog.service")


def utc_now_iso() -> str:
    """Current instant as ISO 8601 UTC with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def assemble_response(
    url: str, count: int, products: list[ProductRecord],
) -> ParseResponse:
    """Bound *products* to *count* and stamp the fetch time.

    An empty list is a normal result meaning nothing matched.
    """
    return ParseResponse(
        url=url,
        count=count,
        products=list(products[:count]),
        fetched_at_iso=utc_now_iso(),
    )


class ParseService:
    """Coordinates one parse request end to end.

    Rate limiter and response cache are shared by every request.  A
    per-key :class:`asyncio.Lock` makes concurrent identical cache misses
    wait for the first fetch instead of each hitting upstream.  The
    blocking fetch and HTML parse run in a worker thread.
    """

    def __init__(
        self,
        scraper_factory: Callable[[], BaseScraper] | None = None,
        response_cache: ResponseCache | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.settings = Settings()
        self.response_cache = response_cache or ResponseCache()
        self.rate_limiter = rate_limiter or RateLimiter()
        self._scraper_factory: Callable[[], BaseScraper] = (
            scraper_factory or KaspiScraper
        )
        self._inflight: dict[str, asyncio.Lock] = {}
        self._inflight_users: dict[str, int] = {}
        self.upstream_fetches: int = 0

    # ── Private helpers ──────────────────────────────────

    def _scrape(self, url: str, count: int) -> list[ProductRecord]:
        """Fetch and extract on a fresh scraper (runs in a worker thread)."""
        scraper = self._scraper_factory()
        try:
            return scraper.scrape(url, count)
        finally:
            scraper.close()

    @asynccontextmanager
    async def _single_flight(self, key: str) -> AsyncIterator[None]:
        """Hold the per-key lock; drop it once nobody is waiting on it."""
        lock = self._inflight.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._inflight[key] = lock
        self._inflight_users[key] = self._inflight_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._inflight_users[key] -= 1
            if not self._inflight_users[key]:
                del self._inflight_users[key]
                del self._inflight[key]

    # ── Public entry point ───────────────────────────────

    async def parse(
        self,
        raw_url: str | None,
        count: object = None,
        client_id: str = "unknown",
    ) -> ParseResponse:
        """Return products for *raw_url*, from cache when fresh.

        Raises:
            InvalidUrl, UrlNotAllowed: bad input, checked first.
            TooFrequent, WindowExceeded: *client_id* is over a limit.
            UpstreamError, FetchFailed: the fetch itself failed.
        """
        url = validate_url(raw_url)
        bounded = clamp_count(count)
        self.rate_limiter.check(client_id)

        key = make_cache_key(url, bounded)
        cached = self.response_cache.get(key)
        if cached is not None:
            return cached

        async with self._single_flight(key):
            # A concurrent request may have filled the entry meanwhile
            cached = self.response_cache.get(key)
            if cached is not None:
                return cached

            logger.info("Fetching %s (count=%d)", url, bounded)
            self.upstream_fetches += 1
            products = await asyncio.to_thread(
                self._scrape, url, bounded
            )
            response = assemble_response(url, bounded, products)
            self.response_cache.store(key, response)
            return response

    def reset(self) -> int:
        """Forget cached responses and rate-limit state.

        Returns the number of cache entries removed.
        """
        removed = self.response_cache.clear()
        self.rate_limiter.reset()
        return removed
