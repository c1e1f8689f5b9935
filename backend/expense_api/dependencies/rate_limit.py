"""
Tiered rate limiting based on the user's effective plan.

Free users: 30 requests/minute
Starter users: 100 requests/minute
Plus users: 200 requests/minute
"""

import logging
import time
from typing import Optional
from collections import defaultdict
from fastapi import Depends, Request, HTTPException, status
from starlette.responses import Response

from ..core.config import settings
from ..core.dependencies import get_current_user
from ..core.plans import PlanId, get_plan_definition
from ..schemas.auth import UserResponse
from ..services.plan_resolver import PlanResolver, plan_resolver

logger = logging.getLogger(__name__)

# In-memory rate limit storage
# In production, consider using Redis for distributed rate limiting
_rate_limit_store: dict = defaultdict(lambda: {"count": 0, "reset_at": 0})


def get_rate_limit_key(request: Request, user_id: Optional[str] = None) -> str:
    """
    Generate a unique rate limit key based on user or IP.
    """
    if user_id:
        return f"user:{user_id}"

    # Fall back to IP-based limiting
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else "unknown"

    return f"ip:{ip}"


def check_rate_limit(
    key: str,
    limit: int,
    window_seconds: int = 60
) -> tuple[bool, int, int]:
    """
    Check if request is within rate limit.

    Returns:
        (is_allowed, remaining, reset_in_seconds)
    """
    now = time.time()
    bucket = _rate_limit_store[key]

    # Reset bucket if window expired
    if now >= bucket["reset_at"]:
        bucket["count"] = 0
        bucket["reset_at"] = now + window_seconds

    if bucket["count"] >= limit:
        reset_in = int(bucket["reset_at"] - now)
        return False, 0, reset_in

    bucket["count"] += 1
    remaining = limit - bucket["count"]
    reset_in = int(bucket["reset_at"] - now)

    return True, remaining, reset_in


def reset_rate_limits() -> None:
    """Forget all buckets."""
    _rate_limit_store.clear()


def get_plan_resolver() -> PlanResolver:
    return plan_resolver


async def get_plan_for_rate_limit(user_id: str, resolver: PlanResolver) -> PlanId:
    """
    Effective plan used to pick the rate limit.
    Falls back to free when the store cannot be read.
    """
    try:
        return await resolver.resolve_effective_plan(user_id)
    except Exception as e:
        logger.warning(f"Could not resolve plan for rate limiting user {user_id}: {e}")
        return PlanId.FREE


class TieredRateLimiter:
    """
    Rate limiter that applies different limits based on the user's plan.

    Usage:
        @router.get("/endpoint", dependencies=[Depends(tiered_rate_limiter)])
        async def endpoint():
            return {"data": "..."}
    """

    def __init__(self, window_seconds: int = 60):
        self.window_seconds = window_seconds

    async def __call__(
        self,
        request: Request,
        user: UserResponse = Depends(get_current_user),
        resolver: PlanResolver = Depends(get_plan_resolver),
    ) -> None:
        """Check rate limit and raise HTTPException if exceeded."""
        plan = await get_plan_for_rate_limit(user.id, resolver)
        limit = get_plan_definition(plan).rate_limit_per_minute

        key = get_rate_limit_key(request, user.id)
        is_allowed, remaining, reset_in = check_rate_limit(
            key, limit, self.window_seconds
        )

        # Store rate limit info in request for headers
        request.state.rate_limit_limit = limit
        request.state.rate_limit_remaining = remaining
        request.state.rate_limit_reset = reset_in

        if not is_allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit exceeded. Try again in {reset_in} seconds.",
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset_in),
                    "Retry-After": str(reset_in),
                }
            )


def add_rate_limit_headers(response: Response, request: Request) -> Response:
    """
    Add rate limit headers to response.
    """
    if hasattr(request.state, "rate_limit_limit"):
        response.headers["X-RateLimit-Limit"] = str(request.state.rate_limit_limit)
        response.headers["X-RateLimit-Remaining"] = str(request.state.rate_limit_remaining)
        response.headers["X-RateLimit-Reset"] = str(request.state.rate_limit_reset)

    return response


# Pre-configured rate limiter instance
tiered_rate_limiter = TieredRateLimiter(window_seconds=settings.rate_limit_window_seconds)
