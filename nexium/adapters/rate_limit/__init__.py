"""Rate limiting adapters.

Admission starts with an in-memory limiter; a shared store can replace it
behind the same interface without changing the HTTP layer.
"""

from nexium.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from nexium.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
]
