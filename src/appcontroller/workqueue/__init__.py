from .queue import Workqueue
from .limiters import (
    BucketRateLimiter,
    ItemExponentialFailureRateLimiter,
    MaxOfRateLimiter,
    RateLimiter,
    default_controller_rate_limiter,
)

__all__ = [
    'BucketRateLimiter',
    'ItemExponentialFailureRateLimiter',
    'MaxOfRateLimiter',
    'RateLimiter',
    'Workqueue',
    'default_controller_rate_limiter',
]
