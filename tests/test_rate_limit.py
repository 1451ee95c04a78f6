"""Tests for the in-memory rate limiter."""

import time

from sponsor_portal.services.rate_limit import Endpoint, RateLimiter, RateLimitRule


def _limiter() -> RateLimiter:
    return RateLimiter(
        {
            Endpoint.LOGIN: RateLimitRule(max_requests=2, window_seconds=60),
            Endpoint.CHECKOUT: RateLimitRule(max_requests=1, window_seconds=1),
        }
    )


def test_allows_up_to_limit_then_denies() -> None:
    limiter = _limiter()

    assert limiter.check("1.2.3.4", Endpoint.LOGIN).allowed is True
    assert limiter.check("1.2.3.4", Endpoint.LOGIN).allowed is True
    denied = limiter.check("1.2.3.4", Endpoint.LOGIN)

    assert denied.allowed is False
    assert 1 <= denied.retry_after_seconds <= 60


def test_window_resets_after_expiry() -> None:
    limiter = _limiter()
    limiter.check("1.2.3.4", Endpoint.CHECKOUT)
    assert limiter.check("1.2.3.4", Endpoint.CHECKOUT).allowed is False

    time.sleep(1.1)

    assert limiter.check("1.2.3.4", Endpoint.CHECKOUT).allowed is True


def test_limits_are_per_client_and_endpoint() -> None:
    limiter = _limiter()
    limiter.check("1.2.3.4", Endpoint.CHECKOUT)

    assert limiter.check("5.6.7.8", Endpoint.CHECKOUT).allowed is True
    assert limiter.check("1.2.3.4", Endpoint.LOGIN).allowed is True
    assert limiter.check("1.2.3.4", Endpoint.CHECKOUT).allowed is False


def test_reset_forgets_counters() -> None:
    limiter = _limiter()
    limiter.check("1.2.3.4", Endpoint.CHECKOUT)

    limiter.reset()

    assert limiter.check("1.2.3.4", Endpoint.CHECKOUT).allowed is True
