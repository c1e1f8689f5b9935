"""
Accessors for Stripe API objects.

Stripe objects behave like dicts, but fields may be missing, and
references may be either an id string or an expanded object.
"""
from typing import Any, Optional


def get_field(obj: Any, key: str, default: Any = None) -> Any:
    """Read a field from a Stripe object or plain dict, tolerating None."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        value = obj.get(key, default)
    else:
        value = getattr(obj, key, default)
    return default if value is None else value


def object_id(value: Any) -> Optional[str]:
    """Id of a reference field that may be a string or an expanded object."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return get_field(value, "id")


def list_data(listing: Any) -> list:
    """The `data` array of a Stripe list object."""
    return list(get_field(listing, "data") or [])


def first_item(subscription: Any) -> Any:
    """First subscription item, or None."""
    items = list_data(get_field(subscription, "items"))
    return items[0] if items else None


def period_end_epoch(subscription: Any) -> Optional[int]:
    """
    `current_period_end` of a subscription in epoch seconds.

    Newer Stripe API versions report it on the subscription item instead
    of the subscription.
    """
    period_end = get_field(subscription, "current_period_end")
    if period_end is None:
        period_end = get_field(first_item(subscription), "current_period_end")
    return period_end
