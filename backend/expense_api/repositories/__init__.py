"""
Store access for subscriptions and transactions.
"""

from .subscriptions import (
    SubscriptionRepository,
    SupabaseSubscriptionRepository,
    subscription_repository,
)
from .transactions import (
    TransactionRepository,
    SupabaseTransactionRepository,
    transaction_repository,
    CSV_UPLOAD_SOURCE,
)

__all__ = [
    "SubscriptionRepository",
    "SupabaseSubscriptionRepository",
    "subscription_repository",
    "TransactionRepository",
    "SupabaseTransactionRepository",
    "transaction_repository",
    "CSV_UPLOAD_SOURCE",
]
