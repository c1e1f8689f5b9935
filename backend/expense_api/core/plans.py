"""
Plan catalog for the subscription paywall.
Defines the CSV-AI cap and feature flags for each plan.
"""

from enum import Enum
from typing import Dict, Optional, Tuple, Union
from dataclasses import dataclass


class PlanId(str, Enum):
    """Subscription tiers."""
    FREE = "free"
    STARTER = "starter"
    PLUS = "plus"


PAID_PLANS = (PlanId.STARTER, PlanId.PLUS)


class Unlimited:
    """Marker for a cap that never runs out. Use the UNLIMITED instance."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNLIMITED"

    def __reduce__(self):
        return (Unlimited, ())


UNLIMITED = Unlimited()

# A finite non-negative cap, or UNLIMITED
Cap = Union[int, Unlimited]


@dataclass(frozen=True)
class PlanDefinition:
    """Static definition of a plan."""
    id: PlanId
    name: str
    price_human: str
    price_cents: int  # Yearly price charged at checkout
    description: str
    highlights: Tuple[str, ...]
    max_csv_ai_eligible: Cap
    ai_enabled: bool
    bank_sync_included: bool
    bank_sync_coming_soon: bool = False
    rate_limit_per_minute: int = 30
    price_interval: str = "year"


# Plan configuration
# - free: 250 AI-reviewed CSV transactions per workspace
# - starter / plus: unlimited AI review, plus adds bank sync (coming soon)
PLANS: Dict[PlanId, PlanDefinition] = {
    PlanId.FREE: PlanDefinition(
        id=PlanId.FREE,
        name="Free",
        price_human="$0",
        price_cents=0,
        description="Try the full ExpenseTerminal flow with a focused limit on AI-reviewed transactions.",
        highlights=(
            "Inbox-first review of your business expenses",
            "CSV uploads for bank and card exports",
            "Up to 250 AI-reviewed CSV transactions per workspace",
            "Schedule C-focused categorization and notes",
        ),
        max_csv_ai_eligible=250,
        ai_enabled=True,
        bank_sync_included=False,
        rate_limit_per_minute=30,
    ),
    PlanId.STARTER: PlanDefinition(
        id=PlanId.STARTER,
        name="Starter",
        price_human="$120",
        price_cents=12000,
        description="A calm, dependable tax companion for a full year of self-employment.",
        highlights=(
            "Unlimited AI-reviewed CSV transactions",
            "Rich Inbox workflows and keyboard shortcuts",
            "Custom tax-year settings and reporting",
            "Export-ready summaries for your accountant",
        ),
        max_csv_ai_eligible=UNLIMITED,
        ai_enabled=True,
        bank_sync_included=False,
        rate_limit_per_minute=100,
    ),
    PlanId.PLUS: PlanDefinition(
        id=PlanId.PLUS,
        name="Plus",
        price_human="$300",
        price_cents=30000,
        description="For founders who want ExpenseTerminal woven directly into their banking.",
        highlights=(
            "Everything in Starter",
            "Live bank syncing with Stripe Financial Connections (coming soon)",
            "Deeper automation for recurring vendors",
        ),
        max_csv_ai_eligible=UNLIMITED,
        ai_enabled=True,
        bank_sync_included=False,
        bank_sync_coming_soon=True,
        rate_limit_per_minute=200,
    ),
}


def get_plan_definition(plan_id: Union[PlanId, str]) -> PlanDefinition:
    """Get the definition for a plan id."""
    return PLANS[PlanId(plan_id)]


def cap_for(plan_id: Union[PlanId, str]) -> Cap:
    """CSV-AI cap for a plan."""
    return get_plan_definition(plan_id).max_csv_ai_eligible


def cap_from_limit(value: Optional[Union[int, float, Unlimited]]) -> Cap:
    """
    Convert a raw limit into a Cap.

    None, infinity and negative numbers all mean "no cap".
    """
    if value is None or isinstance(value, Unlimited):
        return UNLIMITED
    if value < 0 or value == float("inf"):
        return UNLIMITED
    return int(value)


def cap_to_limit(cap: Cap) -> Optional[int]:
    """Convert a Cap into the wire form used by API responses (None = unlimited)."""
    if isinstance(cap, Unlimited):
        return None
    return cap
