"""
Dependencies module for FastAPI dependency injection.
"""

from .rate_limit import (
    tiered_rate_limiter,
    TieredRateLimiter,
    check_rate_limit,
    get_rate_limit_key,
    add_rate_limit_headers,
    reset_rate_limits,
    get_plan_resolver,
)

__all__ = [
    "tiered_rate_limiter",
    "TieredRateLimiter",
    "check_rate_limit",
    "get_rate_limit_key",
    "add_rate_limit_headers",
    "reset_rate_limits",
    "get_plan_resolver",
]
