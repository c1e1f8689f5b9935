"""
Stripe mode selection and per-plan product configuration.

Requests served from localhost use Stripe test mode so the Stripe CLI and
test cards work; every other host uses live mode.
"""
from typing import Optional, Union

from ..core.config import settings
from ..core.errors import StripeNotConfiguredError, StripeProductMissingError
from ..core.plans import PlanId, PAID_PLANS

LIVE = "live"
TEST = "test"

LOCAL_HOSTNAMES = ("localhost", "127.0.0.1")


def get_stripe_mode_for_hostname(hostname: str) -> str:
    """'test' for local hosts, 'live' otherwise."""
    if (hostname or "").lower() in LOCAL_HOSTNAMES:
        return TEST
    return LIVE


def get_secret_key(mode: str) -> str:
    """Stripe secret key for a mode. Raises StripeNotConfiguredError if unset."""
    key = settings.stripe_secret_key_test if mode == TEST else settings.stripe_secret_key
    if not key:
        raise StripeNotConfiguredError(f"Stripe secret key not configured for mode: {mode}")
    return key


def _paid_plan(plan: Union[PlanId, str]) -> PlanId:
    plan_id = PlanId(plan)
    if plan_id not in PAID_PLANS:
        raise ValueError(f"Plan {plan_id.value} has no Stripe product")
    return plan_id


def get_product_id_for_plan(plan: Union[PlanId, str], mode: str) -> Optional[str]:
    plan_id = _paid_plan(plan)
    if plan_id == PlanId.STARTER:
        return settings.stripe_starter_product_id_test if mode == TEST else settings.stripe_starter_product_id
    return settings.stripe_plus_product_id_test if mode == TEST else settings.stripe_plus_product_id


def product_env_var(plan: Union[PlanId, str], mode: str) -> str:
    """Name of the environment variable holding a plan's product id."""
    plan_id = _paid_plan(plan)
    suffix = "_TEST" if mode == TEST else ""
    return f"STRIPE_{plan_id.value.upper()}_PRODUCT_ID{suffix}"


def assert_product_configured(plan: Union[PlanId, str], mode: str) -> str:
    """
    Return the plan's product id, or raise StripeProductMissingError.

    Called before creating a checkout so the caller gets a clear
    configuration error instead of a Stripe API error.
    """
    product_id = get_product_id_for_plan(plan, mode)
    if not product_id:
        plan_id = _paid_plan(plan)
        raise StripeProductMissingError(
            f'Stripe product for plan "{plan_id.value}" is not configured for {mode} mode. '
            f"Set {product_env_var(plan_id, mode)} in env."
        )
    return product_id


def plan_for_product_id(product_id: Optional[str], mode: str) -> Optional[PlanId]:
    """Reverse lookup of a Stripe product id; None when it is not one of ours."""
    if not product_id:
        return None
    for plan in PAID_PLANS:
        if product_id == get_product_id_for_plan(plan, mode):
            return plan
    return None
