# src/cli/api_client.py

"""Product sources for the client: the HTTP API or the in-process service."""

import asyncio
import json
import logging
from typing import Any

from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.filters.description_enricher import enrich
from src.filters.url_validator import clamp_count
from src.models.parse_response import ParseResponse
from src.models.product import ProductRecord
from src.services.errors import ApiClientError, KaspiError
from src.services.parse_service import ParseService
from src.services.rate_limiter import RateLimiter

logger = logging.getLogger("kaspi_catalog.client")

_LOCAL_CLIENT_ID = "local-cli"


def _enriched(response: ParseResponse) -> ParseResponse:
    response.products = [enrich(p) for p in response.products]
    return response


class KaspiApiClient:
    """Calls ``GET /api/kaspi/parse`` on a running API server."""

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = (
            base_url
            or f"http://{Settings.API_HOST}:{Settings.API_PORT}"
        ).rstrip("/")
        self.session = curl_requests.Session()

    def load_products_with_meta(
        self, url: str, count: int,
    ) -> ParseResponse:
        """Fetch one page of products and fill in descriptions.

        Raises:
            ApiClientError: transport failure or a non-200 answer; the
                server's ``error`` text is used when present.
        """
        bounded = clamp_count(count)
        try:
            resp = self.session.get(
                self.base_url + Settings.API_PARSE_PATH,
                params={"url": url, "count": str(bounded)},
                timeout=Settings.REQUEST_TIMEOUT * 2,
            )
        except Exception as exc:
            logger.warning("API request failed: %s", exc, exc_info=True)
            raise ApiClientError(f"API unreachable: {exc}") from exc

        try:
            body: Any = json.loads(resp.text)
        except json.JSONDecodeError:
            body = {}

        if resp.status_code != 200:
            message = (
                body.get("error")
                if isinstance(body, dict) and isinstance(body.get("error"), str)
                else "Could not load products from Kaspi right now."
            )
            raise ApiClientError(message, resp.status_code)

        products = body.get("products") if isinstance(body, dict) else None
        if not isinstance(products, list):
            raise ApiClientError("Malformed API response", resp.status_code)

        return _enriched(
            ParseResponse(
                url=url,
                count=bounded,
                products=[
                    ProductRecord.from_dict(p)
                    for p in products
                    if isinstance(p, dict)
                ],
                fetched_at_iso=str(body.get("fetchedAtISO", "")),
            )
        )


class LocalSource:
    """Runs the parse pipeline in-process, without an API server."""

    def __init__(self, service: ParseService | None = None) -> None:
        # The only caller is this process, so only the window gate applies
        self.service = service or ParseService(
            rate_limiter=RateLimiter(min_interval=0.0)
        )

    def load_products_with_meta(
        self, url: str, count: int,
    ) -> ParseResponse:
        try:
            response = asyncio.run(
                self.service.parse(url, count, _LOCAL_CLIENT_ID)
            )
        except KaspiError as exc:
            raise ApiClientError(exc.message, exc.status_code) from exc
        # Copy so enrichment never touches the server-side cache entry
        return _enriched(
            ParseResponse(
                url=response.url,
                count=response.count,
                products=list(response.products),
                fetched_at_iso=response.fetched_at_iso,
            )
        )
