# src/scrapers/base_scraper.py

"""Abstract base class for category page scrapers."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.product import ProductRecord
from src.services.errors import FetchFailed, UpstreamError


class BaseScraper(ABC):
    """Fetch one page with a browser identity and hand it to a parser.

    Unlike a crawler there is no retry loop here: a non-2xx answer or a
    transport error ends the request and is reported to the caller.
    """

    # Bot-challenge markers; keywords are only scanned on thin pages
    _CHALLENGE_MARKERS: tuple[str, ...] = (
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "cf-turnstile",
        "cf_chl_opt",
    )
    _THIN_PAGE_CHARS = 5000

    def __init__(self, source_name: str) -> None:
        self.source_name = source_name
        self.logger = logging.getLogger(
            f"kaspi_catalog.scraper.{source_name}"
        )
        self.settings = Settings()
        self.selectors: dict[str, str] = self._load_selectors()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    def _load_selectors(self) -> dict[str, str]:
        """Load CSS selectors for this source from selectors.json."""
        with open(self.settings.SELECTORS_PATH, encoding="utf-8") as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, str] = all_selectors.get(
            self.source_name, {}
        )
        return result

    def challenge_marker(self, text: str) -> str | None:
        """The marker that makes *text* look like a bot-challenge page.

        Listing pages mention none of the challenge hosts, so those are
        checked on any page.  Generic keywords such as "captcha" can
        appear in product text and are only checked on thin pages.
        """
        lower = text.lower()
        for marker in self._CHALLENGE_MARKERS:
            if marker in lower:
                return marker
        if len(text) < self._THIN_PAGE_CHARS:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    return keyword
        return None

    def _build_headers(self) -> dict[str, str]:
        """Browser headers plus a Referer pointing at the homepage."""
        return {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self._get_homepage(),
        }

    def fetch_html(self, url: str) -> str:
        """GET *url* once and return the body text.

        Raises:
            UpstreamError: the upstream answered with a non-2xx status.
            FetchFailed: DNS, timeout, connection or TLS failure.
        """
        try:
            resp = self.session.get(
                url,
                headers=self._build_headers(),
                timeout=self._request_timeout,
                allow_redirects=True,
            )
        except Exception as exc:
            self.logger.warning(
                "[%s] Request error for %s: %s",
                self.source_name,
                url,
                exc,
                exc_info=True,
            )
            raise FetchFailed(str(exc) or type(exc).__name__) from exc

        if not 200 <= resp.status_code < 300:
            self.logger.warning(
                "[%s] HTTP %d for %s",
                self.source_name,
                resp.status_code,
                url,
            )
            raise UpstreamError(resp.status_code)

        text = str(resp.text)
        marker = self.challenge_marker(text)
        if marker is not None:
            self.logger.warning(
                "[%s] Challenge page for %s (marker: '%s'), "
                "extraction will likely be empty",
                self.source_name,
                url,
                marker,
            )
        return text

    def scrape(self, url: str, count: int) -> list[ProductRecord]:
        """Fetch *url* and extract at most *count* records."""
        html = self.fetch_html(url)
        try:
            products = self.parse_products(html, count)
        except Exception as exc:
            self.logger.error(
                "[%s] Extraction failed for %s: %s",
                self.source_name,
                url,
                exc,
                exc_info=True,
            )
            raise FetchFailed(str(exc) or type(exc).__name__) from exc
        self.logger.info(
            "[%s] Extracted %d products from %s",
            self.source_name,
            len(products),
            url,
        )
        return products

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self.session.close()

    @abstractmethod
    def _get_homepage(self) -> str:
        """Return the homepage URL for the Referer header."""
        ...

    @abstractmethod
    def parse_products(
        self, html: str, count: int,
    ) -> list[ProductRecord]:
        """Extract at most *count* normalized records from *html*."""
        ...
