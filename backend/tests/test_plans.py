"""
Tests for the plan catalog and cap helpers.
"""
import pytest

from expense_api.core.plans import (
    PLANS,
    UNLIMITED,
    PlanId,
    Unlimited,
    cap_for,
    cap_from_limit,
    cap_to_limit,
    get_plan_definition,
)


class TestPlanCatalog:
    def test_free_plan_has_finite_cap(self):
        assert cap_for(PlanId.FREE) == 250

    @pytest.mark.parametrize("plan", [PlanId.STARTER, PlanId.PLUS])
    def test_paid_plans_are_unlimited(self, plan):
        assert cap_for(plan) is UNLIMITED

    def test_lookup_by_string(self):
        assert get_plan_definition("plus").name == "Plus"

    def test_unknown_plan_raises(self):
        with pytest.raises(ValueError):
            get_plan_definition("enterprise")

    def test_yearly_prices(self):
        assert PLANS[PlanId.STARTER].price_cents == 12000
        assert PLANS[PlanId.PLUS].price_cents == 30000
        assert all(plan.price_interval == "year" for plan in PLANS.values())

    def test_rate_limits_increase_with_tier(self):
        limits = [PLANS[p].rate_limit_per_minute for p in (PlanId.FREE, PlanId.STARTER, PlanId.PLUS)]
        assert limits == [30, 100, 200]

    def test_bank_sync_is_only_announced(self):
        assert PLANS[PlanId.PLUS].bank_sync_coming_soon
        assert not any(plan.bank_sync_included for plan in PLANS.values())


class TestCapConversion:
    def test_unlimited_is_singleton(self):
        assert Unlimited() is UNLIMITED

    @pytest.mark.parametrize("raw", [None, -1, -250, float("inf"), UNLIMITED])
    def test_unlimited_inputs(self, raw):
        assert cap_from_limit(raw) is UNLIMITED

    def test_finite_inputs(self):
        assert cap_from_limit(0) == 0
        assert cap_from_limit(250) == 250

    def test_wire_form(self):
        assert cap_to_limit(UNLIMITED) is None
        assert cap_to_limit(250) == 250
