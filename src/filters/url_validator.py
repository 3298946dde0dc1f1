# src/filters/url_validator.py

"""Validation of caller-supplied category URLs and item counts."""

import logging
import math
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from src.config.settings import Settings
from src.services.errors import InvalidUrl, UrlNotAllowed

logger = logging.getLogger("kaspi_catalog.validator")


def is_allowed_host(host: str) -> bool:
    """Return True for the allowed host itself or any of its subdomains."""
    host = host.lower().rstrip(".")
    allowed = Settings.ALLOWED_HOST
    return host == allowed or host.endswith("." + allowed)


def validate_url(raw: str | None) -> str:
    """Check *raw* is an absolute URL on the allowed origin.

    Returns the normalised URL (lower-case scheme and host, ``/`` for an
    empty path, fragment dropped).  This string is what gets fetched and
    what the response cache is keyed on.

    Raises:
        InvalidUrl: *raw* is empty or cannot be parsed as an absolute URL.
        UrlNotAllowed: the host is not the allowed origin or a subdomain.
    """
    value = (raw or "").strip()
    if not value:
        raise InvalidUrl("Missing required query param: url")

    try:
        parts = urlsplit(value)
        host = parts.hostname or ""
        port = parts.port
    except ValueError as exc:
        logger.debug("Unparsable url %r: %s", value, exc)
        raise InvalidUrl("Invalid url query param") from exc

    if parts.scheme.lower() not in ("http", "https") or not host:
        raise InvalidUrl("Invalid url query param")

    if not is_allowed_host(host):
        logger.info("Rejected url outside allowed origin: %s", host)
        raise UrlNotAllowed(
            f"Only {Settings.ALLOWED_HOST} URLs are allowed"
        )

    netloc = host if port is None else f"{host}:{port}"
    return urlunsplit(
        (parts.scheme.lower(), netloc, parts.path or "/", parts.query, "")
    )


def clamp_count(value: object) -> int:
    """Coerce *value* into an item count within ``[MIN_COUNT, MAX_COUNT]``.

    Missing, non-numeric and non-finite values become ``DEFAULT_COUNT``.
    Out-of-range values are clamped silently.
    """
    if value is None or isinstance(value, bool):
        return Settings.DEFAULT_COUNT
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return Settings.DEFAULT_COUNT
    if not math.isfinite(parsed):
        return Settings.DEFAULT_COUNT
    return min(
        Settings.MAX_COUNT, max(Settings.MIN_COUNT, math.floor(parsed))
    )


def build_page_url(url: str, page: int) -> str:
    """Return *url* with its ``page`` query parameter set to *page*."""
    parts = urlsplit(url)
    params = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k != "page"
    ]
    params.append(("page", str(max(1, int(page)))))
    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, urlencode(params), "")
    )
