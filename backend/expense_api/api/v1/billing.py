"""
Billing API endpoints for Stripe integration.
Handles plans, usage, checkout, portal, invoices and webhooks.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

import stripe
from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from ...core.config import settings
from ...core.dependencies import get_current_user
from ...core.errors import BillingError, SubscriptionPersistenceError
from ...core.plans import PLANS, cap_to_limit
from ...dependencies.rate_limit import tiered_rate_limiter
from ...schemas.auth import UserResponse
from ...schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    CheckoutSyncRequest,
    CheckoutSyncResponse,
    InvoiceListResponse,
    PlanResponse,
    PortalResponse,
    SubscriptionSyncResponse,
    UsageResponse,
    WebhookResponse,
)
from ...services.billing_service import BillingService, billing_service
from ...services.stripe_config import LIVE, LOCAL_HOSTNAMES, get_stripe_mode_for_hostname
from ...services.subscription_reconciler import (
    LIFECYCLE_EVENT_TYPES,
    LifecycleEvent,
    SubscriptionReconciler,
    subscription_reconciler,
)
from ...services.usage_service import UsageService, usage_service


router = APIRouter()
logger = logging.getLogger(__name__)

# Public endpoints: 30 requests per minute per IP
limiter = Limiter(key_func=get_remote_address)


def get_billing_service() -> BillingService:
    return billing_service


def get_usage_service() -> UsageService:
    return usage_service


def get_subscription_reconciler() -> SubscriptionReconciler:
    return subscription_reconciler


def _http_error(e: BillingError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_detail())


def _stripe_error(e: Exception) -> HTTPException:
    logger.error(f"Stripe error: {e}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": f"Stripe error: {str(e)}"},
    )


def request_mode(request: Request) -> str:
    """
    Stripe mode for the host the request was made to.
    Production always uses live mode, whatever the host.
    """
    if settings.is_production_environment:
        return LIVE
    return get_stripe_mode_for_hostname(request.url.hostname or "")


def _origin_of(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def get_base_url(request: Request) -> str:
    """
    Public URL of the web app for Stripe redirects.

    APP_URL wins; on localhost the request's own origin (keeps the port);
    otherwise the Origin/Referer header, then the request URL.
    """
    if settings.app_url and settings.app_url.strip():
        return settings.app_url.strip().rstrip("/")

    hostname = (request.url.hostname or "").lower()
    if hostname in LOCAL_HOSTNAMES:
        return f"{request.url.scheme}://{request.url.netloc}"

    origin = _origin_of(request.headers.get("origin") or request.headers.get("referer"))
    if origin:
        return origin

    return f"{request.url.scheme}://{request.url.netloc}"


def get_portal_return_url(request: Request) -> str:
    origin = _origin_of(request.headers.get("origin") or request.headers.get("referer"))
    if origin:
        return f"{origin}/settings/billing"
    hostname = (request.url.hostname or "").lower()
    scheme = "http" if hostname in LOCAL_HOSTNAMES else "https"
    return f"{scheme}://{request.url.netloc}/settings/billing"


@router.get("/plans", response_model=list[PlanResponse])
@limiter.limit("30/minute")
async def list_plans(request: Request):
    """
    Public plan catalog for the pricing page.
    No authentication required.
    """
    return [
        PlanResponse(
            id=plan.id.value,
            name=plan.name,
            price_human=plan.price_human,
            price_interval=plan.price_interval,
            description=plan.description,
            highlights=list(plan.highlights),
            max_csv_transactions_for_ai=cap_to_limit(plan.max_csv_ai_eligible),
            ai_enabled=plan.ai_enabled,
            bank_sync_included=plan.bank_sync_included,
            bank_sync_coming_soon=plan.bank_sync_coming_soon,
        )
        for plan in PLANS.values()
    ]


@router.get("/usage", response_model=UsageResponse, dependencies=[Depends(tiered_rate_limiter)])
async def get_usage(
    user: UserResponse = Depends(get_current_user),
    usage: UsageService = Depends(get_usage_service),
):
    """
    Get the current user's plan, CSV-AI cap and usage.
    """
    snapshot = await usage.get_usage_snapshot(user.id)
    return snapshot.to_report()


@router.post("/checkout", response_model=CheckoutResponse, dependencies=[Depends(tiered_rate_limiter)])
async def create_checkout_session(
    request: Request,
    body: Optional[CheckoutRequest] = None,
    user: UserResponse = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """
    Create a Stripe Checkout session for the Starter or Plus plan.
    """
    mode = request_mode(request)
    try:
        result = await billing.create_checkout_session(
            user_id=user.id,
            plan=body.plan if body else None,
            mode=mode,
            base_url=get_base_url(request),
        )
    except BillingError as e:
        raise _http_error(e)
    except stripe.StripeError as e:
        raise _stripe_error(e)

    # Only expose the success URL outside production (used by local testing)
    if settings.is_production_environment:
        result["success_url"] = None
    return CheckoutResponse(**result)


@router.post("/checkout/sync", response_model=CheckoutSyncResponse, dependencies=[Depends(tiered_rate_limiter)])
async def sync_checkout(
    request: Request,
    session_id: Optional[str] = Query(None),
    body: Optional[CheckoutSyncRequest] = Body(None),
    user: UserResponse = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """
    Store the subscription from a completed checkout.
    Called when Stripe redirects back with ?session_id=...
    """
    session_id = session_id or (body.session_id if body else None)
    try:
        plan = await billing.sync_checkout_session(user.id, session_id, request_mode(request))
    except BillingError as e:
        raise _http_error(e)
    except stripe.StripeError as e:
        raise _stripe_error(e)
    except Exception as e:
        logger.error(f"Failed to save subscription for user {user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to save subscription"},
        )
    return CheckoutSyncResponse(plan=plan.value)


@router.post("/sync-subscription", response_model=SubscriptionSyncResponse, dependencies=[Depends(tiered_rate_limiter)])
async def sync_subscription(
    request: Request,
    user: UserResponse = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """
    Refresh the stored subscription from Stripe.
    Called when the user returns from the billing portal.
    """
    try:
        result = await billing.sync_subscription(user.id, request_mode(request))
    except BillingError as e:
        raise _http_error(e)
    except stripe.StripeError as e:
        raise _stripe_error(e)
    except Exception as e:
        logger.error(f"Failed to sync subscription for user {user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"ok": False, "error": "Failed to sync subscription"},
        )
    return SubscriptionSyncResponse(**result)


@router.post("/portal", response_model=PortalResponse, dependencies=[Depends(tiered_rate_limiter)])
async def create_portal_session(
    request: Request,
    user: UserResponse = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """
    Create a Stripe billing portal session.
    """
    try:
        url = await billing.create_portal_session(
            user.id, request_mode(request), get_portal_return_url(request)
        )
    except BillingError as e:
        raise _http_error(e)
    except stripe.StripeError as e:
        raise _stripe_error(e)
    return PortalResponse(url=url)


@router.get("/invoices", response_model=InvoiceListResponse, dependencies=[Depends(tiered_rate_limiter)])
async def list_invoices(
    request: Request,
    user: UserResponse = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """
    List the user's paid invoices.
    """
    try:
        invoices = await billing.list_invoices(user.id, request_mode(request))
    except BillingError as e:
        raise _http_error(e)
    except stripe.StripeError as e:
        raise _stripe_error(e)
    return InvoiceListResponse(invoices=invoices)


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    reconciler: SubscriptionReconciler = Depends(get_subscription_reconciler),
):
    """
    Handle Stripe webhook events.
    Subscription updates and deletions are written to the subscription row.
    """
    webhook_secret = settings.effective_webhook_secret
    if not webhook_secret:
        logger.error("Missing STRIPE_WEBHOOK_SECRET or STRIPE_WEBHOOK_SECRET_LOCAL")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Webhook not configured"},
        )

    if not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Missing stripe-signature"},
        )

    payload = await request.body()
    try:
        event = stripe.Webhook.construct_event(payload, stripe_signature, webhook_secret)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid payload"},
        )
    except stripe.SignatureVerificationError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid signature"},
        )

    if event["type"] in LIFECYCLE_EVENT_TYPES:
        lifecycle_event = LifecycleEvent.from_stripe_subscription(event["data"]["object"])
        try:
            await reconciler.apply_lifecycle_event(lifecycle_event)
        except SubscriptionPersistenceError:
            # Return 500 so Stripe will retry the webhook
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"error": "Update failed"},
            )
    else:
        logger.debug(f"Ignoring Stripe event {event['type']}")

    return WebhookResponse(received=True)
