"""
CSV-AI eligibility for a batch of newly ingested transactions.
"""
from dataclasses import dataclass
from typing import List, Union

from ..core.plans import Cap, Unlimited, cap_from_limit


@dataclass(frozen=True)
class EligibilityResult:
    """How many rows of a batch may be sent to AI categorization."""
    eligible_count: int
    ineligible_count: int
    over_limit: bool


def compute_eligibility(
    current_eligible_count: int,
    new_row_count: int,
    cap: Union[Cap, float, None],
) -> EligibilityResult:
    """
    Split a batch of new rows into AI-eligible and ineligible counts.

    Given how many CSV rows the user already has marked eligible, the
    first ``cap - current_eligible_count`` new rows are eligible and the
    rest are not. ``cap`` may be UNLIMITED; raw numbers are accepted and
    a negative number (or None / infinity) is treated as unlimited.

    The result depends only on the arguments.
    """
    if not isinstance(cap, Unlimited):
        cap = cap_from_limit(cap)

    if isinstance(cap, Unlimited):
        return EligibilityResult(
            eligible_count=new_row_count,
            ineligible_count=0,
            over_limit=False,
        )

    slots_left = max(0, cap - current_eligible_count)
    eligible_count = min(new_row_count, slots_left)
    ineligible_count = new_row_count - eligible_count

    return EligibilityResult(
        eligible_count=eligible_count,
        ineligible_count=ineligible_count,
        over_limit=ineligible_count > 0,
    )


def eligibility_flags(result: EligibilityResult) -> List[bool]:
    """Per-row eligible_for_ai flags in batch order."""
    return [True] * result.eligible_count + [False] * result.ineligible_count
