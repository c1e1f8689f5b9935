"""
Domain exceptions for billing and subscription handling.

Route handlers translate these into HTTP responses; services raise them
instead of HTTPException so they can be used outside a request (CLI, jobs).
"""
from typing import Optional


class BillingError(Exception):
    """A billing operation failed in a way the caller can report."""

    status_code: int = 400
    code: Optional[str] = None

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    def to_detail(self) -> dict:
        detail = {"error": self.message}
        if self.code:
            detail["code"] = self.code
        return detail


class StripeNotConfiguredError(BillingError):
    """No Stripe secret key is set for the requested mode."""

    status_code = 500
    code = "STRIPE_NOT_CONFIGURED"


class StripeProductMissingError(BillingError):
    """A paid plan has no Stripe product id configured for the requested mode."""

    status_code = 500
    code = "STRIPE_PRODUCT_MISSING"


class SubscriptionPersistenceError(Exception):
    """Writing a subscription row to the store failed."""
