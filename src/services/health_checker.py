# src/services/health_checker.py

"""Upstream connectivity health check."""

import logging
import time
from dataclasses import dataclass

from src.scrapers.kaspi_scraper import KaspiScraper

logger = logging.getLogger("kaspi_catalog.health")

_HEALTH_TIMEOUT = 10  # seconds
_SLOW_THRESHOLD_MS = 5000


@dataclass
class HealthResult:
    """Result of probing the upstream origin."""

    target: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def probe_upstream() -> HealthResult:
    """GET the allowed origin homepage with the browser session."""
    scraper = KaspiScraper()
    homepage = scraper._get_homepage()
    start = time.monotonic()
    try:
        resp = scraper.session.get(
            homepage,
            headers=scraper._build_headers(),
            timeout=_HEALTH_TIMEOUT,
        )
        elapsed_ms = (time.monotonic() - start) * 1000

        if not 200 <= resp.status_code < 300:
            result = HealthResult(
                homepage, "down", elapsed_ms, f"HTTP {resp.status_code}"
            )
        elif elapsed_ms > _SLOW_THRESHOLD_MS:
            result = HealthResult(
                homepage, "slow", elapsed_ms, "High latency"
            )
        else:
            result = HealthResult(homepage, "ok", elapsed_ms, "")

    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        result = HealthResult(
            homepage, "down", elapsed_ms, str(exc)[:80]
        )
    finally:
        scraper.close()

    logger.info(
        "Health check %s: %s (%.0fms) %s",
        result.target,
        result.status,
        result.latency_ms,
        result.message,
    )
    return result
