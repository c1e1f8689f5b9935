"""
Main Backend FastAPI application.
"""
import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .core.config import settings
from .api.v1.billing import router as billing_router, limiter
from .api.v1.transactions import router as transactions_router
from .middleware import RateLimitHeadersMiddleware

log_level = logging.DEBUG if settings.debug else logging.INFO

logging.basicConfig(
    level=log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

logging.getLogger("uvicorn.access").setLevel(logging.WARNING)  # Reduce access log noise
logging.getLogger("httpx").setLevel(logging.WARNING)  # Supabase client request logs

logger = logging.getLogger(__name__)


class ReverseProxyMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle reverse proxy headers (CloudFront, ALB, etc.)

    The Host header is left untouched: Stripe mode is picked from it.
    """
    async def dispatch(self, request: Request, call_next):
        forwarded_proto = request.headers.get('x-forwarded-proto')
        if forwarded_proto:
            request.scope['scheme'] = forwarded_proto

        forwarded_host = request.headers.get('x-forwarded-host')
        if forwarded_host:
            request.scope['server'] = (forwarded_host, None)

        response = await call_next(request)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.
    """
    logger.info("🚀 Starting ExpenseTerminal API...")

    missing = [
        name for name, value in [
            ("SUPABASE_URL", settings.supabase_url),
            ("SUPABASE_SERVICE_ROLE_KEY", settings.supabase_service_role_key),
            ("SUPABASE_JWT_SECRET", settings.supabase_jwt_secret),
        ] if not value
    ]
    if missing:
        logger.warning(f"⚠️  Supabase not fully configured, missing: {', '.join(missing)}")

    if not settings.effective_webhook_secret:
        logger.warning("⚠️  Stripe webhook secret not set; /billing/webhook will return 500")

    logger.info("🟢 Application startup complete")

    yield

    logger.info("🔴 Application shutdown complete")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=settings.project_name,
        description="Business expense tracking API: plans, billing and CSV transaction ingestion",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(RateLimitHeadersMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.effective_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Stripe-Signature"],
    )

    # Added last so it runs first, before anything reads the host
    app.add_middleware(ReverseProxyMiddleware)

    logger.info(f"🔒 CORS configured with {len(settings.effective_cors_origins)} origins")

    # Public plan catalog is rate limited per IP by slowapi
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.include_router(billing_router, prefix=f"{settings.api_v1_str}/billing", tags=["billing"])
    app.include_router(transactions_router, prefix=settings.api_v1_str)
    logger.info("💳 Billing endpoints enabled at /api/v1/billing")

    return app


# Create the FastAPI app instance
app = create_application()


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "ExpenseTerminal API",
        "version": __version__,
        "status": "running",
        "docs": "/docs" if settings.debug else "disabled",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "expenseterminal-api",
        "environment": settings.environment,
        "debug": settings.debug,
    }
