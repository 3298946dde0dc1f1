# src/services/catalog_loader.py

"""Paginated category loading on top of the client freshness cache."""

import logging
import time
from dataclasses import dataclass, field

from src.config.settings import Settings
from src.filters.url_validator import build_page_url
from src.models.parse_response import (
    ClientCachePayload,
    ParseResponse,
    ProductSource,
)
from src.models.product import ProductRecord
from src.services.errors import ApiClientError
from src.storage.client_cache import ClientCache, compute_expires_at, to_iso

logger = logging.getLogger("kaspi_catalog.loader")


@dataclass
class CategoryListing:
    """What the caller shows for one category after a load."""

    category: str
    products: list[ProductRecord] = field(
        default_factory=lambda: list[ProductRecord]()
    )
    page: int = 1
    has_more: bool = True
    fetched_at_iso: str | None = None
    from_cache: bool = False
    error: str = ""


def find_category(key: str) -> dict[str, str] | None:
    """Look up a category in the registry by key."""
    for category in Settings.CATEGORIES:
        if category["key"] == key:
            return category
    return None


def merge_products(
    existing: list[ProductRecord], incoming: list[ProductRecord],
) -> list[ProductRecord]:
    """Union keyed on ``id::link``; later records replace earlier ones in place."""
    merged: dict[str, ProductRecord] = {}
    for product in [*existing, *incoming]:
        merged[f"{product.id}::{product.link}"] = product
    return list(merged.values())


class CatalogLoader:
    """Loads a category page by page and mirrors it into the client cache."""

    def __init__(
        self,
        source: ProductSource,
        cache: ClientCache | None = None,
        request_spacing: float | None = None,
    ) -> None:
        self.source = source
        self.cache = cache or ClientCache()
        self.settings = Settings()
        self._request_spacing = (
            Settings.MIN_REQUEST_INTERVAL
            if request_spacing is None
            else request_spacing
        )
        self._requests_made = 0

    def _request(self, url: str, count: int) -> ParseResponse:
        """Call the source, keeping the server's minimum spacing."""
        if self._requests_made:
            time.sleep(self._request_spacing)
        self._requests_made += 1
        return self.source.load_products_with_meta(url, count)

    def _category_url(self, category: str) -> str:
        entry = find_category(category)
        if entry is None:
            raise KeyError(f"Unknown category: {category}")
        return entry["url"]

    def _save(self, category: str, listing: CategoryListing) -> None:
        self.cache.write(
            category,
            ClientCachePayload(
                url=self._category_url(category),
                page=listing.page,
                has_more=listing.has_more,
                fetched_at_iso=listing.fetched_at_iso or "",
                expires_at_iso=to_iso(compute_expires_at()),
                products=listing.products,
            ),
        )

    def cached_listing(self, category: str) -> CategoryListing | None:
        """The stored listing when it is still valid."""
        payload = self.cache.read(category)
        if payload is None or not ClientCache.is_valid(payload):
            return None
        return CategoryListing(
            category=category,
            products=payload.products,
            page=max(1, payload.page),
            has_more=payload.has_more,
            fetched_at_iso=payload.fetched_at_iso,
            from_cache=True,
        )

    def find_first_non_empty_page(
        self, category: str, start_page: int,
    ) -> tuple[int, ParseResponse] | None:
        """Scan forward from *start_page* for a page that has products."""
        base_url = self._category_url(category)
        page = max(1, int(start_page))
        for _ in range(self.settings.EMPTY_PAGE_SCAN_LIMIT):
            if page > self.settings.MAX_PAGE:
                break
            response = self._request(
                build_page_url(base_url, page), self.settings.BATCH_SIZE
            )
            if response.products:
                return page, response
            logger.debug("Page %d of '%s' is empty", page, category)
            page += 1
        return None

    def load(
        self, category: str, use_cache: bool = True,
    ) -> CategoryListing:
        """Listing from a valid cache entry, otherwise page 1 fresh."""
        if use_cache:
            cached = self.cached_listing(category)
            if cached is not None:
                logger.info("Serving '%s' from client cache", category)
                return cached
        return self._fetch_batch(
            CategoryListing(category=category), 1, append=False
        )

    def load_more(self, category: str) -> CategoryListing:
        """Append the next non-empty page to the cached listing."""
        current = self.cached_listing(category)
        if current is None:
            return self.load(category, use_cache=False)
        if not current.has_more:
            return current
        current.from_cache = False
        return self._fetch_batch(current, current.page + 1, append=True)

    def _fetch_with_expanded_count(
        self, category: str, listing: CategoryListing,
    ) -> tuple[list[ProductRecord], int, str]:
        """Re-request the base URL with a larger count and merge."""
        current_length = len(listing.products)
        next_count = min(
            current_length + self.settings.BATCH_SIZE,
            self.settings.MAX_TOTAL_PRODUCTS,
        )
        response = self._request(self._category_url(category), next_count)
        merged = merge_products(listing.products, response.products)
        return merged, max(0, len(merged) - current_length), response.fetched_at_iso

    def _fetch_batch(
        self, listing: CategoryListing, start_page: int, append: bool,
    ) -> CategoryListing:
        category = listing.category
        try:
            found = self.find_first_non_empty_page(category, start_page)
            if found is None:
                if append:
                    previous = len(listing.products)
                    merged, added, fetched_at = (
                        self._fetch_with_expanded_count(category, listing)
                    )
                    if added > 0:
                        listing.products = merged
                        listing.fetched_at_iso = fetched_at
                        listing.has_more = (
                            len(merged) > previous
                            and len(merged) < self.settings.MAX_TOTAL_PRODUCTS
                        )
                        self._save(category, listing)
                        return listing
                listing.has_more = False
                if not listing.products:
                    listing.error = "Товары не найдены в этой категории."
                return listing

            page, response = found
            page_products = response.products[: self.settings.BATCH_SIZE]
            listing.products = merge_products(
                listing.products if append else [], page_products
            )
            listing.page = page
            listing.fetched_at_iso = response.fetched_at_iso
            listing.has_more = (
                len(page_products) == self.settings.BATCH_SIZE
                and page < self.settings.MAX_PAGE
            )
            self._save(category, listing)
            return listing
        except ApiClientError as exc:
            logger.warning(
                "Loading '%s' failed: %s", category, exc.message
            )
            if not append or not listing.products:
                listing.error = exc.message
            return listing
