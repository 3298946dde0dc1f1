# src/api/app.py

"""FastAPI application exposing the parse pipeline.

Routes
------
GET /api/kaspi/parse?url=<category url>&count=<1..50>
GET /api/health

Errors raised by the pipeline are rendered as ``{"error": "..."}`` with
the status the error class carries (400, 429, 502 or 500).

On shutdown the lifespan hook empties the response cache and the rate
limiter, so a restarted process starts with no state.

Run with::

    uvicorn src.api.app:app --port 4000
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config.settings import Settings
from src.services.errors import FetchFailed, KaspiError
from src.services.parse_service import ParseService

logger = logging.getLogger("kaspi_catalog.api")


def _client_identity(request: Request) -> str:
    """Source address of the caller, ``"unknown"`` when unavailable."""
    if request.client is None or not request.client.host:
        return "unknown"
    return request.client.host


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Drop cached responses and rate-limit state on shutdown."""
    try:
        yield
    finally:
        service: ParseService = app.state.parse_service
        removed = service.reset()
        logger.info("API shutdown, %d cached responses dropped", removed)


def create_app(service: ParseService | None = None) -> FastAPI:
    """Return a configured FastAPI instance around *service*."""
    app = FastAPI(
        title="kaspi_catalog API",
        description=(
            "Fetches a kaspi.kz category page and returns a bounded, "
            "normalized list of product records."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.parse_service = service or ParseService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(KaspiError)
    async def _kaspi_error_handler(
        request: Request, exc: KaspiError,
    ) -> JSONResponse:
        logger.info(
            "%s %s -> %d: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
        )

    @app.get(Settings.API_PARSE_PATH)
    async def parse_category(
        request: Request,
        url: str | None = None,
        count: str | None = None,
    ) -> dict[str, object]:
        """Return ``{products, fetchedAtISO}`` for a category URL.

        ``count`` is taken as text so that junk values fall back to the
        default instead of failing validation.
        """
        service: ParseService = request.app.state.parse_service
        try:
            response = await service.parse(
                url, count, _client_identity(request)
            )
        except KaspiError:
            raise
        except Exception as exc:
            logger.error(
                "Unexpected failure for %s: %s", url, exc, exc_info=True
            )
            raise FetchFailed(str(exc) or type(exc).__name__) from exc
        return response.to_dict()

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    return app


# Module-level instance used by uvicorn
app = create_app()
