import dataclasses
import math
import time

from typing import Dict, Tuple


class RateLimiter:
    """Decides how long an item has to wait before it is retried."""

    def delay(self, item) -> float:
        raise NotImplementedError()

    def forget(self, item):
        raise NotImplementedError()

    def count(self, item) -> int:
        raise NotImplementedError()


@dataclasses.dataclass(init=False)
class MaxOfRateLimiter(RateLimiter):
    """Returns the longest delay of all its limiters."""

    limiters: Tuple[RateLimiter, ...]

    def __init__(self, *limiters):
        self.limiters = limiters

    def delay(self, item):
        return max(limiter.delay(item) for limiter in self.limiters)

    def forget(self, item):
        for limiter in self.limiters:
            limiter.forget(item)

    def count(self, item):
        return max(limiter.count(item) for limiter in self.limiters)


@dataclasses.dataclass
class BucketRateLimiter(RateLimiter):
    """Overall token bucket, not per item.

    Bounds the total rate of retries no matter how many items fail.
    """

    # Maximum number of tokens in the bucket.
    capacity: int = 100
    # Tokens added per second.
    rate: float = 10

    def __post_init__(self):
        self._tokens = self.capacity
        self._last_added = time.monotonic()
        self._missing_tokens = 0

    def _refill(self):
        now = time.monotonic()
        tokens_to_add = int((now - self._last_added) * self.rate)
        if tokens_to_add > 0:
            self._tokens = min(self.capacity, self._tokens + tokens_to_add)
            self._last_added = now

    def delay(self, item):
        self._refill()
        if self._tokens > 0:
            self._missing_tokens = 0
            self._tokens -= 1
            return 0
        # Every item that finds the bucket empty waits one more token
        # interval than the one before it.
        # See https://danielmangum.com/posts/controller-runtime-client-go-rate-limiting/
        self._missing_tokens += 1
        return self._missing_tokens / self.rate

    def forget(self, item):
        pass

    def count(self, item):
        return 0


@dataclasses.dataclass
class ItemExponentialFailureRateLimiter(RateLimiter):
    """Per item backoff: base_delay * 2^failures, capped at max_delay."""

    base_delay: float = 0.005  # 5 Milliseconds
    max_delay: float = 1000  # 1000 Seconds
    failures: Dict[object, int] = dataclasses.field(default_factory=dict, init=False)

    def delay(self, item):
        exp = self.failures.get(item, 0)
        self.failures[item] = exp + 1
        # Cap the exponent before computing, 2**exp overflows a float
        # for items that failed often enough.
        if exp > 64:
            return self.max_delay
        backoff = self.base_delay * math.pow(2, exp)
        return min(backoff, self.max_delay)

    def forget(self, item):
        self.failures.pop(item, None)

    def count(self, item):
        return self.failures.get(item, 0)


def default_controller_rate_limiter():
    """Per item exponential backoff combined with an overall rate limit."""
    return MaxOfRateLimiter(
        ItemExponentialFailureRateLimiter(),
        BucketRateLimiter(),
    )
