"""
Shared fixtures: in-memory stores and an authenticated test client.
"""
import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from expense_api.main import app
from expense_api.core.dependencies import get_current_user
from expense_api.dependencies.rate_limit import reset_rate_limits
from expense_api.schemas.auth import UserResponse
from expense_api.schemas.billing import SubscriptionRecord


class InMemorySubscriptionRepository:
    """SubscriptionRepository over a list of dict rows."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows = [dict(row) for row in (rows or [])]
        self.fail_with: Optional[Exception] = None
        self.update_calls = 0

    async def get_latest_for_user(self, user_id: str) -> Optional[SubscriptionRecord]:
        owned = [row for row in self.rows if row["user_id"] == user_id]
        if not owned:
            return None
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        owned.sort(key=lambda row: row.get("updated_at") or epoch, reverse=True)
        return SubscriptionRecord.model_validate(owned[0])

    async def update_by_stripe_subscription_id(self, stripe_subscription_id: str, fields: Dict[str, Any]) -> int:
        self.update_calls += 1
        if self.fail_with:
            raise self.fail_with
        matched = [row for row in self.rows if row.get("stripe_subscription_id") == stripe_subscription_id]
        for row in matched:
            row.update(fields)
        return len(matched)

    async def update_for_user(self, user_id: str, fields: Dict[str, Any]) -> int:
        if self.fail_with:
            raise self.fail_with
        matched = [row for row in self.rows if row["user_id"] == user_id]
        for row in matched:
            row.update(fields)
        return len(matched)

    async def insert(self, fields: Dict[str, Any]) -> None:
        if self.fail_with:
            raise self.fail_with
        self.rows.append(dict(fields))

    def snapshot(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.rows)


class InMemoryTransactionRepository:
    """TransactionRepository over a list of dict rows."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows = [dict(row) for row in (rows or [])]

    def add_csv_rows(self, user_id: str, count: int, eligible: bool) -> None:
        for _ in range(count):
            self.rows.append({"user_id": user_id, "source": "csv_upload", "eligible_for_ai": eligible})

    async def count_csv_uploaded(self, user_id: str) -> int:
        return len([r for r in self.rows if r["user_id"] == user_id and r["source"] == "csv_upload"])

    async def count_csv_eligible(self, user_id: str) -> int:
        return len([
            r for r in self.rows
            if r["user_id"] == user_id and r["source"] == "csv_upload" and r.get("eligible_for_ai")
        ])

    async def insert_rows(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        self.rows.extend(dict(row) for row in rows)
        return rows


@pytest.fixture
def subscriptions():
    return InMemorySubscriptionRepository()


@pytest.fixture
def transactions():
    return InMemoryTransactionRepository()


@pytest.fixture
def mock_user():
    return UserResponse(id="user-1", email="u@example.com")


@pytest.fixture(autouse=True)
def clear_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def client(mock_user):
    """TestClient with authentication replaced by a fixed user."""
    app.dependency_overrides[get_current_user] = lambda: mock_user
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
