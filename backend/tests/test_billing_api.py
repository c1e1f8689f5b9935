"""
Tests for the billing and transaction HTTP endpoints.
"""
from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import stripe
from fastapi.testclient import TestClient

from expense_api.api.v1.billing import (
    get_billing_service,
    get_subscription_reconciler,
    get_usage_service,
)
from expense_api.api.v1.transactions import get_transaction_ingest_service
from expense_api.core.config import settings
from expense_api.dependencies.rate_limit import get_plan_resolver
from expense_api.main import app
from expense_api.services.billing_service import BillingService
from expense_api.services.plan_resolver import PlanResolver
from expense_api.services.subscription_reconciler import SubscriptionReconciler
from expense_api.services.transaction_ingest import TransactionIngestService
from expense_api.services.usage_service import UsageService


@pytest.fixture
def stripe_api():
    return MagicMock()


@pytest.fixture
def api(client, subscriptions, transactions, stripe_api):
    """Authenticated client wired to in-memory stores."""
    app.dependency_overrides[get_plan_resolver] = lambda: PlanResolver(subscriptions)
    app.dependency_overrides[get_usage_service] = lambda: UsageService(subscriptions, transactions)
    app.dependency_overrides[get_billing_service] = lambda: BillingService(subscriptions, stripe_api=stripe_api)
    app.dependency_overrides[get_subscription_reconciler] = lambda: SubscriptionReconciler(subscriptions)
    app.dependency_overrides[get_transaction_ingest_service] = (
        lambda: TransactionIngestService(subscriptions, transactions)
    )
    return client


class TestPlans:
    def test_public_catalog(self, client):
        response = client.get("/api/v1/billing/plans")
        assert response.status_code == 200
        plans = {plan["id"]: plan for plan in response.json()}
        assert set(plans) == {"free", "starter", "plus"}
        assert plans["free"]["max_csv_transactions_for_ai"] == 250
        assert plans["plus"]["max_csv_transactions_for_ai"] is None
        assert plans["plus"]["bank_sync_coming_soon"] is True


class TestUsage:
    def test_requires_auth(self):
        response = TestClient(app).get("/api/v1/billing/usage")
        assert response.status_code == 401

    def test_usage_report(self, api, transactions):
        transactions.add_csv_rows("user-1", 260, eligible=False)
        response = api.get("/api/v1/billing/usage")
        assert response.status_code == 200
        data = response.json()
        assert data["plan"] == "free"
        assert data["max_csv_transactions_for_ai"] == 250
        assert data["csv_transactions"]["over_limit_count"] == 10
        assert data["over_limit"] is True
        assert response.headers["X-RateLimit-Limit"] == "30"

    def test_rate_limited_after_plan_quota(self, api):
        for _ in range(30):
            assert api.get("/api/v1/billing/usage").status_code == 200
        response = api.get("/api/v1/billing/usage")
        assert response.status_code == 429
        assert "Retry-After" in response.headers

    def test_starter_plan_gets_higher_quota(self, api, subscriptions):
        subscriptions.rows = [{"user_id": "user-1", "plan": "starter", "status": "active"}]
        for _ in range(100):
            response = api.get("/api/v1/billing/usage")
            assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert api.get("/api/v1/billing/usage").status_code == 429

    def test_plus_plan_limit_header(self, api, subscriptions):
        subscriptions.rows = [{"user_id": "user-1", "plan": "plus", "status": "trialing"}]
        response = api.get("/api/v1/billing/usage")
        assert response.headers["X-RateLimit-Limit"] == "200"

    def test_unreadable_store_falls_back_to_free_quota(self, api):
        failing = MagicMock()
        failing.resolve_effective_plan.side_effect = RuntimeError("Supabase is not configured")
        app.dependency_overrides[get_plan_resolver] = lambda: failing
        response = api.get("/api/v1/billing/usage")
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "30"


class TestCheckout:
    def test_invalid_plan(self, api):
        response = api.post("/api/v1/billing/checkout", json={"plan": "gold"})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Invalid plan. Use starter or plus."

    def test_missing_product_is_reported(self, api, monkeypatch):
        monkeypatch.setattr(settings, "stripe_starter_product_id_test", None)
        response = api.post(
            "/api/v1/billing/checkout",
            json={"plan": "starter"},
            headers={"host": "localhost:8000"},
        )
        assert response.status_code == 500
        assert response.json()["detail"]["code"] == "STRIPE_PRODUCT_MISSING"

    def test_checkout_url(self, api, stripe_api, monkeypatch):
        monkeypatch.setattr(settings, "stripe_secret_key_test", "sk_test_x")
        monkeypatch.setattr(settings, "stripe_starter_product_id_test", "prod_starter")
        monkeypatch.setattr(settings, "app_url", None)
        stripe_api.checkout.Session.create.return_value = {"url": "https://checkout.stripe.com/c/1"}

        response = api.post(
            "/api/v1/billing/checkout",
            json={"plan": "starter"},
            headers={"host": "localhost:8000"},
        )

        assert response.status_code == 200
        assert response.json()["url"] == "https://checkout.stripe.com/c/1"
        kwargs = stripe_api.checkout.Session.create.call_args.kwargs
        assert kwargs["cancel_url"] == "http://localhost:8000/settings/billing"


class TestStripeModeSelection:
    @pytest.fixture(autouse=True)
    def both_modes_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "stripe_secret_key", "sk_live_x")
        monkeypatch.setattr(settings, "stripe_secret_key_test", "sk_test_x")
        monkeypatch.setattr(settings, "stripe_starter_product_id", "prod_starter_live")
        monkeypatch.setattr(settings, "stripe_starter_product_id_test", "prod_starter_test")
        monkeypatch.setattr(settings, "app_url", None)

    def checkout_api_key(self, api, stripe_api, headers):
        stripe_api.checkout.Session.create.return_value = {"url": "https://checkout.stripe.com/c/1"}
        response = api.post("/api/v1/billing/checkout", json={"plan": "starter"}, headers=headers)
        assert response.status_code == 200
        return stripe_api.checkout.Session.create.call_args.kwargs["api_key"]

    def test_forwarded_localhost_cannot_select_test_mode_in_production(self, api, stripe_api, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")
        api_key = self.checkout_api_key(
            api, stripe_api,
            {"host": "api.expenseterminal.com", "x-forwarded-host": "localhost"},
        )
        assert api_key == "sk_live_x"

    def test_production_localhost_still_live(self, api, stripe_api, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")
        assert self.checkout_api_key(api, stripe_api, {"host": "localhost:8000"}) == "sk_live_x"

    def test_forwarded_host_does_not_replace_host(self, api, stripe_api, monkeypatch):
        monkeypatch.setattr(settings, "environment", "dev")
        api_key = self.checkout_api_key(
            api, stripe_api,
            {"host": "api.expenseterminal.com", "x-forwarded-host": "localhost"},
        )
        assert api_key == "sk_live_x"

    def test_localhost_uses_test_mode_outside_production(self, api, stripe_api, monkeypatch):
        monkeypatch.setattr(settings, "environment", "dev")
        assert self.checkout_api_key(api, stripe_api, {"host": "localhost:8000"}) == "sk_test_x"


class TestPortal:
    def test_no_billing_account(self, api):
        response = api.post("/api/v1/billing/portal")
        assert response.status_code == 400
        assert "No billing account" in response.json()["detail"]["error"]


class TestSubscriptionSync:
    def test_store_failure_returns_error(self, api, stripe_api, subscriptions, monkeypatch):
        monkeypatch.setattr(settings, "stripe_secret_key", "sk_live_x")
        subscriptions.rows = [{
            "user_id": "user-1", "plan": "starter", "status": "active", "stripe_customer_id": "cus_1",
        }]
        stripe_api.Subscription.list.return_value = {"data": []}
        subscriptions.fail_with = RuntimeError("db down")

        response = api.post("/api/v1/billing/sync-subscription")

        assert response.status_code == 500
        assert response.json()["detail"] == {"ok": False, "error": "Failed to sync subscription"}

    def test_no_customer(self, api):
        response = api.post("/api/v1/billing/sync-subscription")
        assert response.status_code == 200
        assert response.json() == {"ok": True, "updated": False, "status": None}


class TestWebhook:
    @pytest.fixture(autouse=True)
    def webhook_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", "whsec_x")
        monkeypatch.setattr(settings, "stripe_webhook_secret_local", None)

    def test_not_configured(self, api, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", None)
        response = api.post("/api/v1/billing/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})
        assert response.status_code == 500

    def test_missing_signature(self, api):
        response = api.post("/api/v1/billing/webhook", content=b"{}")
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Missing stripe-signature"

    def test_invalid_signature(self, api):
        with patch.object(
            stripe.Webhook, "construct_event",
            side_effect=stripe.SignatureVerificationError("bad", "t=1,v1=x"),
        ):
            response = api.post("/api/v1/billing/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Invalid signature"

    def test_subscription_deleted_marks_row_canceled(self, api, subscriptions):
        subscriptions.rows = [{
            "user_id": "user-1", "plan": "plus", "status": "active", "stripe_subscription_id": "sub_123",
        }]
        event = {
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_123", "status": "canceled", "current_period_end": 1735689600}},
        }
        with patch.object(stripe.Webhook, "construct_event", return_value=event):
            response = api.post("/api/v1/billing/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})

        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert subscriptions.rows[0]["status"] == "canceled"

    def test_other_events_ignored(self, api, subscriptions):
        event = {"type": "invoice.paid", "data": {"object": {"id": "in_1"}}}
        with patch.object(stripe.Webhook, "construct_event", return_value=event):
            response = api.post("/api/v1/billing/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})
        assert response.status_code == 200
        assert subscriptions.update_calls == 0

    def test_store_failure_asks_for_retry(self, api, subscriptions):
        subscriptions.fail_with = RuntimeError("db down")
        event = {
            "type": "customer.subscription.updated",
            "data": {"object": {"id": "sub_123", "status": "active"}},
        }
        with patch.object(stripe.Webhook, "construct_event", return_value=event):
            response = api.post("/api/v1/billing/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})
        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "Update failed"


class TestTransactionUpload:
    def test_upload_applies_cap(self, api, transactions):
        transactions.add_csv_rows("user-1", 249, eligible=True)
        body = {
            "tax_year": 2024,
            "rows": [
                {"date": date(2024, 1, d).isoformat(), "vendor": "Coffee Shop", "amount": "-4.50"}
                for d in range(1, 4)
            ],
        }
        response = api.post("/api/v1/transactions/upload", json=body)
        assert response.status_code == 200
        data = response.json()
        assert data["imported"] == 3
        assert data["eligible_for_ai"] == 1
        assert data["ineligible_for_ai"] == 2
        assert data["over_limit"] is True

    def test_empty_batch_rejected(self, api):
        response = api.post("/api/v1/transactions/upload", json={"rows": []})
        assert response.status_code == 422
