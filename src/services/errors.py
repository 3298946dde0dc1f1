# src/services/errors.py

"""Error taxonomy for the parse pipeline.

Every error carries the HTTP status the API answers with and a message
that is safe to show to the caller.  None of them is retried inside the
service; retry policy belongs to the caller.
"""


class KaspiError(Exception):
    """Base class for request-terminating pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidUrl(KaspiError):
    """The ``url`` parameter is missing or not an absolute URL."""

    status_code = 400


class UrlNotAllowed(KaspiError):
    """The URL host is outside the allowed origin."""

    status_code = 400


class RateLimited(KaspiError):
    """The caller is over one of the rate-limit gates."""

    status_code = 429


class TooFrequent(RateLimited):
    """Requests arrive faster than the minimum spacing."""

    def __init__(self) -> None:
        super().__init__("Too many requests. Slow down and try again.")


class WindowExceeded(RateLimited):
    """The per-window request ceiling has been reached."""

    def __init__(self) -> None:
        super().__init__("Rate limit exceeded. Please wait a moment.")


class UpstreamError(KaspiError):
    """Upstream answered with a non-2xx status."""

    status_code = 502

    def __init__(self, upstream_status: int) -> None:
        super().__init__(
            f"Kaspi fetch failed: HTTP {upstream_status}"
        )
        self.upstream_status = upstream_status


class FetchFailed(KaspiError):
    """Transport or parse failure before a response could be built."""

    status_code = 500

    def __init__(self, cause: str) -> None:
        super().__init__(f"Failed to parse kaspi page: {cause}")
        self.cause = cause


class ApiClientError(Exception):
    """A product source could not deliver a response.

    Raised on the client side, either from a transport failure talking to
    the API or from a :class:`KaspiError` the API answered with.
    ``status_code`` is ``0`` when no HTTP answer was received.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
