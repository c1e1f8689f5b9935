"""
Effective plan resolution from the user's subscription row.
"""
import logging
from typing import Optional

from ..core.plans import PlanId, PAID_PLANS
from ..repositories.subscriptions import SubscriptionRepository, subscription_repository
from ..schemas.billing import SubscriptionRecord

logger = logging.getLogger(__name__)

# past_due keeps access while Stripe retries the payment
ENTITLED_STATUSES = ("active", "trialing", "past_due")
CANCELED_STATUS = "canceled"


def plan_for_record(record: Optional[SubscriptionRecord]) -> PlanId:
    """
    Effective plan for a subscription row.

    Missing row, missing plan or status, and canceled subscriptions are
    all free. A paid plan is only granted while the status is entitled.
    """
    if record is None or not record.plan or not record.status:
        return PlanId.FREE
    if record.status == CANCELED_STATUS:
        return PlanId.FREE
    if record.status in ENTITLED_STATUSES:
        for plan in PAID_PLANS:
            if record.plan == plan.value:
                return plan
    return PlanId.FREE


class PlanResolver:
    """Resolves a user's effective plan."""

    def __init__(self, subscriptions: SubscriptionRepository = subscription_repository):
        self.subscriptions = subscriptions

    async def resolve_effective_plan(self, user_id: str) -> PlanId:
        """Fetch the latest subscription row for the user and resolve its plan."""
        record = await self.subscriptions.get_latest_for_user(user_id)
        plan = plan_for_record(record)
        logger.debug(f"Resolved plan {plan.value} for user {user_id}")
        return plan


plan_resolver = PlanResolver()
