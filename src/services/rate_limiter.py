# src/services/rate_limiter.py

"""Per-client rate limiting with a spacing gate and a counting window."""

import logging
import threading
import time
from dataclasses import dataclass

from src.config.settings import Settings
from src.services.errors import TooFrequent, WindowExceeded

logger = logging.getLogger("kaspi_catalog.rate_limit")


@dataclass
class RateLimitState:
    """Window bookkeeping for one client identity."""

    window_start_at: float
    request_count: int
    last_request_at: float


class RateLimiter:
    """Two independent gates per client identity.

    The spacing gate rejects requests that arrive closer together than
    ``min_interval`` (tight retry loops); the window gate caps the number
    of accepted requests per ``window`` seconds (sustained abuse).  State
    is O(1) per identity and is never swept; a stale entry simply starts
    a new window on its next use.
    """

    def __init__(
        self,
        window: float | None = None,
        max_requests: int | None = None,
        min_interval: float | None = None,
    ) -> None:
        self.window = (
            Settings.RATE_LIMIT_WINDOW if window is None else window
        )
        self.max_requests = (
            Settings.MAX_REQUESTS_PER_WINDOW
            if max_requests is None
            else max_requests
        )
        self.min_interval = (
            Settings.MIN_REQUEST_INTERVAL
            if min_interval is None
            else min_interval
        )
        self._states: dict[str, RateLimitState] = {}
        self._lock = threading.Lock()

    def check(self, client_id: str) -> None:
        """Accept a request from *client_id* or raise.

        Raises:
            TooFrequent: less than ``min_interval`` since the last
                accepted request.
            WindowExceeded: the current window is already full.
        """
        now = time.monotonic()
        with self._lock:
            state = self._states.get(client_id)

            if state is None:
                self._states[client_id] = RateLimitState(
                    window_start_at=now,
                    request_count=1,
                    last_request_at=now,
                )
                return

            if now - state.last_request_at < self.min_interval:
                logger.info(
                    "Rejected %s: %.2fs since last request",
                    client_id,
                    now - state.last_request_at,
                )
                raise TooFrequent()

            if now - state.window_start_at > self.window:
                self._states[client_id] = RateLimitState(
                    window_start_at=now,
                    request_count=1,
                    last_request_at=now,
                )
                return

            if state.request_count >= self.max_requests:
                logger.warning(
                    "Rejected %s: %d requests in current window",
                    client_id,
                    state.request_count,
                )
                raise WindowExceeded()

            state.request_count += 1
            state.last_request_at = now

    def reset(self) -> None:
        """Forget every tracked identity."""
        with self._lock:
            self._states.clear()
