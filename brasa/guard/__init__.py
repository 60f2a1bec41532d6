"""Request guards applied before work is queued."""

from .ratelimit import RateLimitError, RateLimitResult, assert_rate_limit

__all__ = ["RateLimitError", "RateLimitResult", "assert_rate_limit"]
