"""
Usage reporting: plan, CSV-AI cap and how much of it has been used.

The over-limit check here looks back at what has already been ingested.
It complements the ingestion-time gate in `eligibility`, which is a soft
cap: two uploads racing on the same baseline can both pass, and the
snapshot is where the resulting overshoot shows up.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from ..core.plans import Cap, PlanId, Unlimited, cap_for, cap_to_limit
from ..repositories.subscriptions import SubscriptionRepository, subscription_repository
from ..repositories.transactions import TransactionRepository, transaction_repository
from ..schemas.billing import CsvTransactionUsage, UsageResponse
from .plan_resolver import PlanResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageSnapshot:
    """Derived usage state for one user. Computed per request, never stored."""
    plan: PlanId
    cap: Cap
    total_ingested: int
    eligible_for_ai: int
    over_limit_count: int
    over_limit: bool
    status: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False

    def to_report(self) -> UsageResponse:
        return UsageResponse(
            plan=self.plan.value,
            max_csv_transactions_for_ai=cap_to_limit(self.cap),
            csv_transactions=CsvTransactionUsage(
                total_csv_uploaded=self.total_ingested,
                eligible_for_ai=self.eligible_for_ai,
                over_limit_count=self.over_limit_count,
            ),
            over_limit=self.over_limit,
            subscription_status=self.status,
            current_period_end=self.current_period_end,
            cancel_at_period_end=self.cancel_at_period_end,
        )


def over_limit_for(total: int, cap: Cap) -> Tuple[int, bool]:
    """(over_limit_count, over_limit) for an ingested total against a cap."""
    if isinstance(cap, Unlimited):
        return 0, False
    return max(0, total - cap), total > cap


class UsageService:
    """Builds usage snapshots from the subscription and transaction stores."""

    def __init__(
        self,
        subscriptions: SubscriptionRepository = subscription_repository,
        transactions: TransactionRepository = transaction_repository,
    ):
        self.subscriptions = subscriptions
        self.transactions = transactions
        self.plan_resolver = PlanResolver(subscriptions)

    async def get_usage_snapshot(self, user_id: str) -> UsageSnapshot:
        plan = await self.plan_resolver.resolve_effective_plan(user_id)
        cap = cap_for(plan)

        total = await self.transactions.count_csv_uploaded(user_id)
        eligible = await self.transactions.count_csv_eligible(user_id)
        over_limit_count, over_limit = over_limit_for(total, cap)

        # Display fields come from a fresh read of the latest row
        record = await self.subscriptions.get_latest_for_user(user_id)

        if over_limit:
            logger.info(f"User {user_id} is over the CSV-AI cap by {over_limit_count} ({plan.value})")

        return UsageSnapshot(
            plan=plan,
            cap=cap,
            total_ingested=total,
            eligible_for_ai=eligible,
            over_limit_count=over_limit_count,
            over_limit=over_limit,
            status=record.status if record else None,
            current_period_end=record.current_period_end if record else None,
            cancel_at_period_end=record.cancel_at_period_end if record else False,
        )


usage_service = UsageService()
