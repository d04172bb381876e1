"""SQLAlchemy ORM models for in-progress checkouts and settled receipts"""

import uuid
from sqlalchemy import Column, String, BigInteger, DateTime, Text, JSON, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class CheckoutSessionRecord(Base):
    """Serialized CheckoutSession between HTTP requests"""

    __tablename__ = "checkout_session"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    account_id = Column(Text, nullable=True, index=True)
    state = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class SaleReceipt(Base):
    """Receipt projection of a sale accepted by the Settlement Service"""

    __tablename__ = "sale_receipt"

    order_id = Column(BigInteger, primary_key=True, autoincrement=False)
    status = Column(Text, nullable=False)
    account_id = Column(Text, nullable=False, index=True)
    customer_ref = Column(Text, nullable=False)
    sale_structure = Column(String(32), nullable=False)
    snapshot = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
