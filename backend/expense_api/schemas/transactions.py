"""
Pydantic schemas for transaction ingestion.
"""
import datetime as dt
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class IncomingTransactionRow(BaseModel):
    """One already-parsed row of a bank or card export."""
    date: dt.date = Field(..., description="Transaction date")
    vendor: str = Field(..., min_length=1, description="Merchant as it appears on the statement")
    description: Optional[str] = Field(None, description="Free-text memo")
    amount: Decimal = Field(..., description="Signed amount")


class TransactionUploadRequest(BaseModel):
    """A batch of rows from one CSV upload."""
    rows: List[IncomingTransactionRow] = Field(..., min_length=1, description="Parsed CSV rows")
    tax_year: Optional[int] = Field(None, ge=2000, le=2100, description="Tax year; defaults to the current year")


class TransactionUploadResponse(BaseModel):
    """Outcome of a CSV upload."""
    imported: int
    eligible_for_ai: int
    ineligible_for_ai: int
    over_limit: bool
    plan: str
    max_csv_transactions_for_ai: Optional[int] = Field(None, description="None means unlimited")
