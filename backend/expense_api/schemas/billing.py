"""
Pydantic schemas for billing endpoints and subscription rows.
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime


class SubscriptionRecord(BaseModel):
    """A row of the `subscriptions` table."""
    id: Optional[str] = None
    user_id: str
    plan: Optional[str] = None
    status: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}


class PlanResponse(BaseModel):
    """Public view of a plan definition."""
    id: str
    name: str
    price_human: str
    price_interval: str
    description: str
    highlights: List[str]
    max_csv_transactions_for_ai: Optional[int] = Field(None, description="None means unlimited")
    ai_enabled: bool
    bank_sync_included: bool
    bank_sync_coming_soon: bool = False


class CsvTransactionUsage(BaseModel):
    """Counts of CSV-uploaded transactions."""
    total_csv_uploaded: int = 0
    eligible_for_ai: int = 0
    over_limit_count: int = 0


class UsageResponse(BaseModel):
    """User's plan, CSV-AI cap and current usage."""
    plan: str
    max_csv_transactions_for_ai: Optional[int] = Field(None, description="None means unlimited")
    csv_transactions: CsvTransactionUsage
    over_limit: bool
    subscription_status: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class CheckoutRequest(BaseModel):
    """Request to create a checkout session."""
    plan: Optional[str] = None


class CheckoutResponse(BaseModel):
    """Response with checkout session URL."""
    url: Optional[str] = None
    success_url: Optional[str] = None


class CheckoutSyncRequest(BaseModel):
    """Body form of the checkout sync call; the query string also works."""
    session_id: Optional[str] = None


class CheckoutSyncResponse(BaseModel):
    ok: bool = True
    plan: str


class SubscriptionSyncResponse(BaseModel):
    ok: bool = True
    updated: bool
    status: Optional[str] = None


class PortalResponse(BaseModel):
    url: str


class InvoiceItem(BaseModel):
    """A paid Stripe invoice."""
    id: str
    date: str
    amount_paid: int
    currency: str
    status: str
    hosted_invoice_url: Optional[str] = None
    number: Optional[str] = None


class InvoiceListResponse(BaseModel):
    invoices: List[InvoiceItem] = []


class WebhookResponse(BaseModel):
    """Response from webhook processing."""
    received: bool = True
