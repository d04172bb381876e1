"""GET /v1/receipts - Settled sale receipts"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pos_planner.api.v1.schemas import ReceiptHistoryResponse, ReceiptResponse, ReceiptSummary
from pos_planner.infrastructure.database.session import get_db
from pos_planner.infrastructure.database.repositories import ReceiptRepository

router = APIRouter()


@router.get("/receipts", response_model=ReceiptHistoryResponse)
def get_receipt_history(
    account_id: str = Query(..., description="Account/seller identifier"),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent receipts issued by an account.

    Returns:
        Receipts, newest first
    """
    receipt_repo = ReceiptRepository(db)
    receipts = receipt_repo.list_by_account(account_id, limit=20)

    summaries = [
        ReceiptSummary(
            order_id=r.order_id,
            status=r.status,
            customer_ref=r.customer_ref,
            sale_structure=r.sale_structure,
            created_at=r.created_at.isoformat(),
        )
        for r in receipts
    ]

    return ReceiptHistoryResponse(account_id=account_id, receipts=summaries)


@router.get("/receipts/{order_id}", response_model=ReceiptResponse)
def get_receipt(order_id: int, db: Session = Depends(get_db)):
    """Reprint a receipt by settlement order ID"""
    receipt = ReceiptRepository(db).get_by_order_id(order_id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return ReceiptResponse(**receipt.snapshot)
