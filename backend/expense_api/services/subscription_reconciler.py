"""
Applies Stripe subscription lifecycle events to stored subscription rows.

Events are matched by Stripe subscription id. The update is last-write-wins:
no event ordering is tracked, and replaying an event writes the same values.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel

from ..core.errors import SubscriptionPersistenceError
from ..repositories.subscriptions import SubscriptionRepository, subscription_repository
from ..utils.stripe_objects import get_field, period_end_epoch
from .plan_resolver import ENTITLED_STATUSES, CANCELED_STATUS

logger = logging.getLogger(__name__)

LIFECYCLE_EVENT_TYPES = (
    "customer.subscription.updated",
    "customer.subscription.deleted",
)


def normalize_status(raw_status: Optional[str]) -> str:
    """Map a Stripe status onto the statuses we store; anything unknown is canceled."""
    if raw_status in ENTITLED_STATUSES:
        return raw_status
    return CANCELED_STATUS


def epoch_to_datetime(value: Optional[float]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class LifecycleEvent(BaseModel):
    """What we keep from a provider subscription change."""
    external_subscription_id: str
    status: Optional[str] = None
    current_period_end_epoch_seconds: Optional[float] = None
    cancel_at_period_end: bool = False

    @classmethod
    def from_stripe_subscription(cls, subscription: Any) -> "LifecycleEvent":
        """Build an event from a Stripe Subscription object (or its dict form)."""
        return cls(
            external_subscription_id=get_field(subscription, "id"),
            status=get_field(subscription, "status"),
            current_period_end_epoch_seconds=period_end_epoch(subscription),
            cancel_at_period_end=bool(get_field(subscription, "cancel_at_period_end", False)),
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionReconciler:
    """Keeps subscription rows in step with the payments provider."""

    def __init__(
        self,
        subscriptions: SubscriptionRepository = subscription_repository,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.subscriptions = subscriptions
        self.clock = clock

    async def apply_lifecycle_event(self, event: LifecycleEvent) -> None:
        """
        Write the event's status, period end and cancel flag to the matching row.

        No matching row is not an error: the subscription may have been
        created outside this app. Store failures raise
        SubscriptionPersistenceError so the webhook can ask for a retry.
        """
        fields = {
            "status": normalize_status(event.status),
            "current_period_end": epoch_to_datetime(event.current_period_end_epoch_seconds),
            "cancel_at_period_end": event.cancel_at_period_end,
            "updated_at": self.clock(),
        }

        try:
            updated = await self.subscriptions.update_by_stripe_subscription_id(
                event.external_subscription_id, fields
            )
        except Exception as e:
            logger.error(
                f"Failed to update subscription {event.external_subscription_id}: {e}"
            )
            raise SubscriptionPersistenceError(str(e)) from e

        if updated:
            logger.info(
                f"Subscription {event.external_subscription_id} set to {fields['status']} "
                f"(cancel_at_period_end={event.cancel_at_period_end})"
            )
        else:
            logger.info(f"No stored row for subscription {event.external_subscription_id}; ignoring")


subscription_reconciler = SubscriptionReconciler()
