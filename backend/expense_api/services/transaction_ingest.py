"""
CSV transaction ingestion with the per-plan AI eligibility gate.

Rows past the plan's CSV-AI cap are still stored, only with
eligible_for_ai = false so they are never sent for AI categorization.
The current eligible count is read before the insert, so two concurrent
uploads can both see the same baseline and overshoot the cap; the usage
report surfaces that overshoot.
"""
import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from ..core.plans import cap_for, cap_to_limit
from ..repositories.subscriptions import SubscriptionRepository, subscription_repository
from ..repositories.transactions import (
    CSV_UPLOAD_SOURCE,
    TransactionRepository,
    transaction_repository,
)
from ..schemas.transactions import IncomingTransactionRow, TransactionUploadResponse
from .eligibility import compute_eligibility, eligibility_flags
from .plan_resolver import PlanResolver

logger = logging.getLogger(__name__)

VENDOR_KEY_LENGTH = 20


def normalize_vendor(vendor: str) -> str:
    """Matching key for a vendor: lowercase alphanumerics, at most 20 chars."""
    return re.sub(r"[^a-z0-9]", "", vendor.lower())[:VENDOR_KEY_LENGTH]


class TransactionIngestService:
    """Stores uploaded CSV rows and decides which may be AI-categorized."""

    def __init__(
        self,
        subscriptions: SubscriptionRepository = subscription_repository,
        transactions: TransactionRepository = transaction_repository,
    ):
        self.transactions = transactions
        self.plan_resolver = PlanResolver(subscriptions)

    async def ingest_csv_rows(
        self,
        user_id: str,
        rows: List[IncomingTransactionRow],
        tax_year: Optional[int] = None,
    ) -> TransactionUploadResponse:
        plan = await self.plan_resolver.resolve_effective_plan(user_id)
        cap = cap_for(plan)
        current_eligible = await self.transactions.count_csv_eligible(user_id)

        result = compute_eligibility(current_eligible, len(rows), cap)
        flags = eligibility_flags(result)
        year = tax_year or datetime.now(timezone.utc).year

        inserts = [
            {
                "user_id": user_id,
                "date": row.date,
                "vendor": row.vendor,
                "description": row.description,
                "amount": row.amount,
                "status": "pending",
                "tax_year": year,
                "source": CSV_UPLOAD_SOURCE,
                "vendor_normalized": normalize_vendor(row.vendor),
                "eligible_for_ai": eligible,
            }
            for row, eligible in zip(rows, flags)
        ]
        inserted = await self.transactions.insert_rows(inserts)

        if result.over_limit:
            logger.info(
                f"User {user_id} hit the CSV-AI cap ({plan.value}): "
                f"{result.ineligible_count} of {len(rows)} rows not eligible"
            )

        return TransactionUploadResponse(
            imported=len(inserted),
            eligible_for_ai=result.eligible_count,
            ineligible_for_ai=result.ineligible_count,
            over_limit=result.over_limit,
            plan=plan.value,
            max_csv_transactions_for_ai=cap_to_limit(cap),
        )


transaction_ingest_service = TransactionIngestService()
