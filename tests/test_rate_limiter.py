# tests/test_rate_limiter.py

"""Tests for the per-client spacing and window rate limiter."""

import unittest
from unittest.mock import patch

from src.services.errors import RateLimited, TooFrequent, WindowExceeded
from src.services.rate_limiter import RateLimiter


@patch("src.services.rate_limiter.time.monotonic")
class TestRateLimiter(unittest.TestCase):
    """RateLimiter unit tests with a controlled monotonic clock."""

    def setUp(self) -> None:
        self.limiter = RateLimiter(
            window=60.0, max_requests=3, min_interval=1.2
        )

    def test_first_request_accepted(self, mock_clock) -> None:
        mock_clock.return_value = 100.0
        self.limiter.check("1.2.3.4")

    def test_too_frequent(self, mock_clock) -> None:
        """A second request inside the spacing is rejected."""
        mock_clock.return_value = 100.0
        self.limiter.check("c")
        mock_clock.return_value = 101.0
        with self.assertRaises(TooFrequent) as ctx:
            self.limiter.check("c")
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(
            ctx.exception.message,
            "Too many requests. Slow down and try again.",
        )

    def test_rejection_does_not_move_last_request(self, mock_clock) -> None:
        """Rejected requests leave the spacing anchored on the last accepted one."""
        mock_clock.return_value = 100.0
        self.limiter.check("c")
        mock_clock.return_value = 101.0
        with self.assertRaises(TooFrequent):
            self.limiter.check("c")
        mock_clock.return_value = 101.3
        self.limiter.check("c")

    def test_window_exceeded(self, mock_clock) -> None:
        for t in (100.0, 102.0, 104.0):
            mock_clock.return_value = t
            self.limiter.check("c")
        mock_clock.return_value = 106.0
        with self.assertRaises(WindowExceeded) as ctx:
            self.limiter.check("c")
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(
            ctx.exception.message,
            "Rate limit exceeded. Please wait a moment.",
        )

    def test_window_resets_after_expiry(self, mock_clock) -> None:
        for t in (100.0, 102.0, 104.0):
            mock_clock.return_value = t
            self.limiter.check("c")
        mock_clock.return_value = 160.5
        self.limiter.check("c")
        mock_clock.return_value = 162.0
        self.limiter.check("c")

    def test_clients_are_independent(self, mock_clock) -> None:
        mock_clock.return_value = 100.0
        self.limiter.check("a")
        self.limiter.check("b")
        with self.assertRaises(RateLimited):
            self.limiter.check("a")

    def test_reset_forgets_clients(self, mock_clock) -> None:
        mock_clock.return_value = 100.0
        self.limiter.check("c")
        self.limiter.reset()
        self.limiter.check("c")

    def test_zero_interval_only_counts(self, mock_clock) -> None:
        limiter = RateLimiter(window=60.0, max_requests=2, min_interval=0.0)
        mock_clock.return_value = 100.0
        limiter.check("c")
        limiter.check("c")
        with self.assertRaises(WindowExceeded):
            limiter.check("c")


if __name__ == "__main__":
    unittest.main()
