"""
Stripe billing operations: checkout, checkout sync, subscription sync,
customer portal and invoices.

Stripe calls pass the API key per request because the mode (test/live)
is chosen per request from the hostname.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import stripe

from ..core.errors import BillingError
from ..core.plans import PlanId, PAID_PLANS, get_plan_definition
from ..repositories.subscriptions import SubscriptionRepository, subscription_repository
from ..schemas.billing import InvoiceItem
from ..utils.stripe_objects import get_field, object_id, list_data, first_item, period_end_epoch
from .stripe_config import (
    assert_product_configured,
    get_secret_key,
    plan_for_product_id,
)
from .plan_resolver import ENTITLED_STATUSES
from .subscription_reconciler import epoch_to_datetime

logger = logging.getLogger(__name__)

INVOICE_LIMIT = 24
SUBSCRIPTION_LIST_LIMIT = 10


def parse_paid_plan(plan: Optional[str]) -> PlanId:
    """Validate a checkout plan name. Raises BillingError for missing or unknown plans."""
    if not plan:
        raise BillingError("Missing plan")
    if plan not in [p.value for p in PAID_PLANS]:
        raise BillingError("Invalid plan. Use starter or plus.")
    return PlanId(plan)


class BillingService:
    """Stripe-facing billing operations for a signed-in user."""

    def __init__(
        self,
        subscriptions: SubscriptionRepository = subscription_repository,
        stripe_api=stripe,
    ):
        self.subscriptions = subscriptions
        self.stripe = stripe_api

    async def create_checkout_session(
        self, user_id: str, plan: Optional[str], mode: str, base_url: str
    ) -> Dict[str, Optional[str]]:
        """
        Create a yearly subscription Checkout Session for a paid plan.

        Raises:
            BillingError: missing or invalid plan
            StripeProductMissingError: the plan has no product for this mode
        """
        plan_id = parse_paid_plan(plan)
        product_id = assert_product_configured(plan_id, mode)
        api_key = get_secret_key(mode)
        definition = get_plan_definition(plan_id)

        success_url = f"{base_url}/settings/billing?session_id={{CHECKOUT_SESSION_ID}}"
        cancel_url = f"{base_url}/settings/billing"

        session = self.stripe.checkout.Session.create(
            api_key=api_key,
            mode="subscription",
            line_items=[
                {
                    "price_data": {
                        "currency": "usd",
                        "product": product_id,
                        "unit_amount": definition.price_cents,
                        "recurring": {"interval": definition.price_interval},
                    },
                    "quantity": 1,
                }
            ],
            success_url=success_url,
            cancel_url=cancel_url,
            client_reference_id=user_id,
        )

        logger.info(f"Created {mode} checkout session for user {user_id} ({plan_id.value})")
        return {"url": get_field(session, "url"), "success_url": success_url}

    async def sync_checkout_session(self, user_id: str, session_id: Optional[str], mode: str) -> PlanId:
        """
        Store the subscription created by a completed Checkout Session.

        Updates the user's row when there is one, otherwise inserts it.
        """
        if not session_id:
            raise BillingError("Missing session_id (query or body)")

        api_key = get_secret_key(mode)
        session = self.stripe.checkout.Session.retrieve(
            session_id, api_key=api_key, expand=["subscription"]
        )

        subscription_ref = get_field(session, "subscription")
        subscription_id = object_id(subscription_ref)
        if not subscription_id:
            raise BillingError("Checkout session has no subscription")

        if isinstance(subscription_ref, str):
            subscription = self.stripe.Subscription.retrieve(subscription_id, api_key=api_key)
        else:
            subscription = subscription_ref
        if not subscription:
            raise BillingError("Could not load subscription")

        item = first_item(subscription)
        price = get_field(item, "price")
        product_id = object_id(get_field(price, "product"))
        if not product_id:
            raise BillingError("Subscription has no product")

        plan = plan_for_product_id(product_id, mode)
        if not plan:
            raise BillingError("Product not mapped to a plan")

        fields = {
            "stripe_customer_id": object_id(get_field(session, "customer")),
            "stripe_subscription_id": subscription_id,
            "stripe_product_id": product_id,
            "stripe_price_id": get_field(price, "id"),
            "plan": plan.value,
            "status": get_field(subscription, "status") or "active",
            "current_period_end": epoch_to_datetime(period_end_epoch(subscription)),
            "cancel_at_period_end": bool(get_field(subscription, "cancel_at_period_end", False)),
        }

        existing = await self.subscriptions.get_latest_for_user(user_id)
        if existing:
            fields["updated_at"] = datetime.now(timezone.utc)
            await self.subscriptions.update_for_user(user_id, fields)
        else:
            await self.subscriptions.insert({"user_id": user_id, **fields})

        logger.info(f"Synced checkout {session_id} for user {user_id}: {plan.value}")
        return plan

    async def sync_subscription(self, user_id: str, mode: str) -> Dict[str, Any]:
        """
        Pull the user's subscription state from Stripe into the store.

        Used when the user returns from the billing portal so cancellations
        and plan changes show up without waiting for the webhook.
        """
        row = await self.subscriptions.get_latest_for_user(user_id)
        if not row or not row.stripe_customer_id:
            return {"ok": True, "updated": False, "status": None}

        api_key = get_secret_key(mode)
        listing = self.stripe.Subscription.list(
            customer=row.stripe_customer_id,
            status="all",
            limit=SUBSCRIPTION_LIST_LIMIT,
            api_key=api_key,
        )
        candidates = list_data(listing)

        subscription = None
        if row.stripe_subscription_id:
            subscription = next(
                (s for s in candidates if get_field(s, "id") == row.stripe_subscription_id), None
            )
        if subscription is None and candidates:
            subscription = next(
                (s for s in candidates if get_field(s, "status") in ENTITLED_STATUSES),
                candidates[0],
            )

        now = datetime.now(timezone.utc)

        if subscription is None:
            await self.subscriptions.update_for_user(user_id, {"status": "canceled", "updated_at": now})
            logger.info(f"No Stripe subscription left for user {user_id}; marked canceled")
            return {"ok": True, "updated": True, "status": "canceled"}

        item = first_item(subscription)
        price = get_field(item, "price")
        product_id = object_id(get_field(price, "product"))
        plan = plan_for_product_id(product_id, mode)
        if plan is None:
            plan = PlanId.PLUS if row.plan == PlanId.PLUS.value else PlanId.STARTER
        status = get_field(subscription, "status") or "active"

        await self.subscriptions.update_for_user(user_id, {
            "stripe_subscription_id": get_field(subscription, "id"),
            "stripe_product_id": product_id,
            "stripe_price_id": get_field(price, "id"),
            "plan": plan.value,
            "status": status,
            "current_period_end": epoch_to_datetime(period_end_epoch(subscription)),
            "cancel_at_period_end": bool(get_field(subscription, "cancel_at_period_end", False)),
            "updated_at": now,
        })
        return {"ok": True, "updated": True, "status": status}

    async def create_portal_session(self, user_id: str, mode: str, return_url: str) -> str:
        """Billing portal URL for the user's Stripe customer."""
        row = await self.subscriptions.get_latest_for_user(user_id)
        if not row or not row.stripe_customer_id:
            raise BillingError("No billing account found. Subscribe to a plan first.")

        session = self.stripe.billing_portal.Session.create(
            customer=row.stripe_customer_id,
            return_url=return_url,
            api_key=get_secret_key(mode),
        )
        return get_field(session, "url")

    async def list_invoices(self, user_id: str, mode: str) -> List[InvoiceItem]:
        """Paid invoices for the user's Stripe customer, newest first."""
        row = await self.subscriptions.get_latest_for_user(user_id)
        if not row or not row.stripe_customer_id:
            return []

        listing = self.stripe.Invoice.list(
            customer=row.stripe_customer_id,
            limit=INVOICE_LIMIT,
            status="paid",
            api_key=get_secret_key(mode),
        )

        invoices = []
        for invoice in list_data(listing):
            paid_at = get_field(get_field(invoice, "status_transitions"), "paid") or get_field(invoice, "created") or 0
            invoices.append(InvoiceItem(
                id=get_field(invoice, "id"),
                date=datetime.fromtimestamp(int(paid_at), tz=timezone.utc).strftime("%Y-%m-%d"),
                amount_paid=get_field(invoice, "amount_paid") or 0,
                currency=(get_field(invoice, "currency") or "usd").upper(),
                status=get_field(invoice, "status") or "paid",
                hosted_invoice_url=get_field(invoice, "hosted_invoice_url"),
                number=get_field(invoice, "number"),
            ))
        return invoices


billing_service = BillingService()
