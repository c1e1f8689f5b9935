"""
Transaction API endpoints.

Only the CSV upload gate lives here: parsing happens in the browser and
AI categorization runs elsewhere for rows flagged eligible_for_ai.
"""
from fastapi import APIRouter, Depends, HTTPException, status
import logging

from ...core.dependencies import get_current_user
from ...dependencies.rate_limit import tiered_rate_limiter
from ...schemas.auth import UserResponse
from ...schemas.transactions import TransactionUploadRequest, TransactionUploadResponse
from ...services.transaction_ingest import TransactionIngestService, transaction_ingest_service

router = APIRouter(prefix="/transactions", tags=["transactions"])
logger = logging.getLogger(__name__)


def get_transaction_ingest_service() -> TransactionIngestService:
    return transaction_ingest_service


@router.post(
    "/upload",
    response_model=TransactionUploadResponse,
    dependencies=[Depends(tiered_rate_limiter)],
)
async def upload_transactions(
    body: TransactionUploadRequest,
    current_user: UserResponse = Depends(get_current_user),
    ingest: TransactionIngestService = Depends(get_transaction_ingest_service),
):
    """
    Store a batch of parsed CSV rows.

    Rows beyond the plan's CSV-AI cap are stored but not eligible for AI
    categorization.
    """
    try:
        return await ingest.ingest_csv_rows(current_user.id, body.rows, body.tax_year)
    except Exception as e:
        logger.error(f"Failed to ingest {len(body.rows)} rows for user {current_user.id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to insert transactions"
        )
