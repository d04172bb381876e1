"""Data access layer for checkout sessions and receipts"""

import uuid
from typing import List, Optional
from sqlalchemy.orm import Session
from pos_planner.infrastructure.database.models import CheckoutSessionRecord, SaleReceipt
from pos_planner.domain.models import CheckoutSession, Receipt


class CheckoutSessionRepository:
    """Repository for in-progress checkout sessions"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, session: CheckoutSession, account_id: Optional[str] = None) -> CheckoutSessionRecord:
        """Persist a new session"""
        record = CheckoutSessionRecord(account_id=account_id, state=session.to_dict())
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return record

    def get(self, session_id: uuid.UUID) -> Optional[CheckoutSessionRecord]:
        return self.db.get(CheckoutSessionRecord, session_id)

    def save(self, record: CheckoutSessionRecord, session: CheckoutSession) -> CheckoutSessionRecord:
        """Write the session state back; a fresh dict marks the JSON column dirty"""
        record.state = session.to_dict()
        self.db.flush()
        return record

    def delete(self, record: CheckoutSessionRecord) -> None:
        self.db.delete(record)
        self.db.flush()


class ReceiptRepository:
    """Repository for settled sale receipts"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, receipt: Receipt) -> SaleReceipt:
        """Store the receipt projection of a settled sale"""
        db_receipt = SaleReceipt(
            order_id=receipt.order_id,
            status=receipt.status,
            account_id=receipt.account_id,
            customer_ref=receipt.customer_ref,
            sale_structure=receipt.structure.value,
            snapshot=receipt.to_dict(),
        )
        self.db.add(db_receipt)
        self.db.flush()
        return db_receipt

    def get_by_order_id(self, order_id: int) -> Optional[SaleReceipt]:
        return self.db.get(SaleReceipt, order_id)

    def list_by_account(self, account_id: str, limit: int = 20) -> List[SaleReceipt]:
        """Fetch recent receipts for an account"""
        return (
            self.db.query(SaleReceipt)
            .filter(SaleReceipt.account_id == account_id)
            .order_by(SaleReceipt.created_at.desc(), SaleReceipt.order_id.desc())
            .limit(limit)
            .all()
        )
