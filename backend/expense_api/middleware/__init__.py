"""
Middleware module for FastAPI application.
"""

from .rate_limit import RateLimitHeadersMiddleware

__all__ = ["RateLimitHeadersMiddleware"]
