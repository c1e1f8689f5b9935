"""
Middleware that reports tiered rate limit state on every response.

The limit itself is enforced by the `tiered_rate_limiter` dependency,
which records its numbers on request.state.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..dependencies.rate_limit import add_rate_limit_headers


class RateLimitHeadersMiddleware(BaseHTTPMiddleware):
    """Adds X-RateLimit-* headers when a limiter ran for the request."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        return add_rate_limit_headers(response, request)
