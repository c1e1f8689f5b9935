"""
Subscription store access.

The billing logic only needs a handful of row operations, so it talks to
this narrow interface instead of building Supabase queries itself.
"""
import logging
from typing import Any, Dict, Optional, Protocol

from ..core.supabase_client import supabase_client
from ..schemas.billing import SubscriptionRecord
from ..utils.serialization import to_json_safe

logger = logging.getLogger(__name__)

TABLE = "subscriptions"


class SubscriptionRepository(Protocol):
    """Operations on the `subscriptions` table."""

    async def get_latest_for_user(self, user_id: str) -> Optional[SubscriptionRecord]:
        """Most recently updated row for the user, or None."""
        ...

    async def update_by_stripe_subscription_id(
        self, stripe_subscription_id: str, fields: Dict[str, Any]
    ) -> int:
        """Update rows matching a Stripe subscription id. Returns the number of rows updated."""
        ...

    async def update_for_user(self, user_id: str, fields: Dict[str, Any]) -> int:
        """Update every row owned by the user. Returns the number of rows updated."""
        ...

    async def insert(self, fields: Dict[str, Any]) -> None:
        """Insert a new row."""
        ...


class SupabaseSubscriptionRepository:
    """SubscriptionRepository backed by Supabase."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        # Resolved lazily so importing this module never needs credentials
        return self._client or supabase_client.service_client

    async def get_latest_for_user(self, user_id: str) -> Optional[SubscriptionRecord]:
        # Use .limit(1) instead of .single() to avoid exception on no results
        result = self.client.table(TABLE).select("*").eq(
            "user_id", user_id
        ).order("updated_at", desc=True).limit(1).execute()

        if result.data and len(result.data) > 0:
            return SubscriptionRecord.model_validate(result.data[0])
        return None

    async def update_by_stripe_subscription_id(
        self, stripe_subscription_id: str, fields: Dict[str, Any]
    ) -> int:
        result = self.client.table(TABLE).update(to_json_safe(fields)).eq(
            "stripe_subscription_id", stripe_subscription_id
        ).execute()
        return len(result.data or [])

    async def update_for_user(self, user_id: str, fields: Dict[str, Any]) -> int:
        result = self.client.table(TABLE).update(to_json_safe(fields)).eq(
            "user_id", user_id
        ).execute()
        return len(result.data or [])

    async def insert(self, fields: Dict[str, Any]) -> None:
        result = self.client.table(TABLE).insert(to_json_safe(fields)).execute()
        if not result.data:
            logger.error(f"Subscription insert returned no data for user {fields.get('user_id')}")


subscription_repository = SupabaseSubscriptionRepository()
