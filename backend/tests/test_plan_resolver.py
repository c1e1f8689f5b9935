"""
Tests for effective plan resolution.
"""
from datetime import datetime, timezone

import pytest

from expense_api.core.plans import PlanId
from expense_api.schemas.billing import SubscriptionRecord
from expense_api.services.plan_resolver import PlanResolver, plan_for_record


def record(**fields):
    return SubscriptionRecord(user_id="user-1", **fields)


class TestPlanForRecord:
    def test_no_row_is_free(self):
        assert plan_for_record(None) == PlanId.FREE

    @pytest.mark.parametrize("status", ["active", "trialing", "past_due"])
    def test_entitled_statuses_keep_paid_plan(self, status):
        assert plan_for_record(record(plan="plus", status=status)) == PlanId.PLUS

    def test_canceled_is_free(self):
        assert plan_for_record(record(plan="starter", status="canceled")) == PlanId.FREE

    @pytest.mark.parametrize("status", ["incomplete", "unpaid", "paused"])
    def test_other_statuses_are_free(self, status):
        assert plan_for_record(record(plan="starter", status=status)) == PlanId.FREE

    def test_missing_plan_or_status_is_free(self):
        assert plan_for_record(record(plan=None, status="active")) == PlanId.FREE
        assert plan_for_record(record(plan="plus", status=None)) == PlanId.FREE

    def test_unknown_plan_is_free(self):
        assert plan_for_record(record(plan="enterprise", status="active")) == PlanId.FREE


class TestPlanResolver:
    @pytest.mark.asyncio
    async def test_uses_latest_row(self, subscriptions):
        subscriptions.rows = [
            {"user_id": "user-1", "plan": "starter", "status": "canceled",
             "updated_at": datetime(2024, 1, 1, tzinfo=timezone.utc)},
            {"user_id": "user-1", "plan": "plus", "status": "active",
             "updated_at": datetime(2024, 6, 1, tzinfo=timezone.utc)},
        ]
        resolver = PlanResolver(subscriptions)
        assert await resolver.resolve_effective_plan("user-1") == PlanId.PLUS

    @pytest.mark.asyncio
    async def test_other_users_rows_ignored(self, subscriptions):
        subscriptions.rows = [{"user_id": "user-2", "plan": "plus", "status": "active"}]
        resolver = PlanResolver(subscriptions)
        assert await resolver.resolve_effective_plan("user-1") == PlanId.FREE
