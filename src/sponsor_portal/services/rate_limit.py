"""In-memory fixed-window rate limiting per client and endpoint class.

Counters live in process memory and reset on restart. This is a coarse
flood guard evaluated before any domain logic.
"""

import math
import time
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter


class Endpoint(str, Enum):
    """Endpoint classes with independent limits."""

    LOGIN = "login"
    CHECKOUT = "checkout"
    UPDATE_SUBMISSION = "update_submission"
    UPDATE_REQUEST = "update_request"


@dataclass(frozen=True)
class RateLimitRule:
    """At most ``max_requests`` per ``window_seconds``."""

    max_requests: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check."""

    allowed: bool
    retry_after_seconds: int = 0


class RateLimiter:
    """Fixed-window counters keyed by (endpoint, client) in process memory."""

    def __init__(self, rules: Mapping[Endpoint, RateLimitRule]) -> None:
        self._rules = dict(rules)
        self._items: dict[Endpoint, RateLimitItem] = {
            endpoint: RateLimitItemPerSecond(rule.max_requests, rule.window_seconds)
            for endpoint, rule in self._rules.items()
        }
        self._storage = MemoryStorage()
        self._limiter = FixedWindowRateLimiter(self._storage)

    def check(self, client_id: str, endpoint: Endpoint) -> RateLimitDecision:
        """Count a request and decide whether it may proceed."""
        item = self._items[endpoint]
        if self._limiter.hit(item, endpoint.value, client_id):
            return RateLimitDecision(allowed=True)
        reset_at, _ = self._limiter.get_window_stats(item, endpoint.value, client_id)
        return RateLimitDecision(
            allowed=False,
            retry_after_seconds=max(1, math.ceil(reset_at - time.time())),
        )

    def reset(self) -> None:
        """Forget all counters."""
        self._storage.reset()
