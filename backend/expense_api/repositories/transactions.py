"""
Transaction store access used by usage reporting and CSV ingestion.
"""
from typing import Any, Dict, List, Protocol

from ..core.supabase_client import supabase_client
from ..utils.serialization import to_json_safe

TABLE = "transactions"
CSV_UPLOAD_SOURCE = "csv_upload"


class TransactionRepository(Protocol):
    """Operations on the `transactions` table."""

    async def count_csv_uploaded(self, user_id: str) -> int:
        ...

    async def count_csv_eligible(self, user_id: str) -> int:
        ...

    async def insert_rows(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        ...


class SupabaseTransactionRepository:
    """TransactionRepository backed by Supabase."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        return self._client or supabase_client.service_client

    async def count_csv_uploaded(self, user_id: str) -> int:
        result = self.client.table(TABLE).select(
            "id", count="exact"
        ).eq("user_id", user_id).eq("source", CSV_UPLOAD_SOURCE).execute()
        return result.count or 0

    async def count_csv_eligible(self, user_id: str) -> int:
        result = self.client.table(TABLE).select(
            "id", count="exact"
        ).eq("user_id", user_id).eq("source", CSV_UPLOAD_SOURCE).eq(
            "eligible_for_ai", True
        ).execute()
        return result.count or 0

    async def insert_rows(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not rows:
            return []
        result = self.client.table(TABLE).insert(to_json_safe(rows)).execute()
        return result.data or []


transaction_repository = SupabaseTransactionRepository()
