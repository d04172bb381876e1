"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from pos_planner.api.main import create_app
from pos_planner.api.dependencies import get_settlement_client
from pos_planner.infrastructure.database.models import Base
from pos_planner.infrastructure.database.session import get_db
from pos_planner.domain.exceptions import SettlementServiceError
from pos_planner.domain.models import (
    CheckoutStep,
    Frequency,
    RecurrenceRule,
    SaleStructure,
    SettlementRequest,
    SettlementResult,
)
from pos_planner.domain.workflow import CheckoutWorkflow


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeSettlementClient:
    """In-memory Settlement Service: records requests, optionally fails"""

    def __init__(self):
        self.requests: List[SettlementRequest] = []
        self.error: Optional[str] = None
        self.next_order_id = 5001

    async def submit_sale(self, request: SettlementRequest) -> SettlementResult:
        self.requests.append(request)
        if self.error:
            raise SettlementServiceError(self.error)
        order_id = self.next_order_id
        self.next_order_id += 1
        return SettlementResult(order_id=order_id, status="completed")


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def settlement() -> FakeSettlementClient:
    return FakeSettlementClient()


@pytest.fixture
def client(db: Session, settlement: FakeSettlementClient) -> TestClient:
    """Create FastAPI test client with test database and fake settlement"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settlement_client] = lambda: settlement
    return TestClient(app)


@pytest.fixture
def installment_workflow() -> CheckoutWorkflow:
    """
    Checkout parked on SubmitPayment:
    250.00 cart, 50.00 down, 10% interest, 220.00 over 4 monthly installments
    """
    workflow = CheckoutWorkflow()
    workflow.select_customer("cust_1")
    workflow.next()
    workflow.add_product("sku_tv", Decimal("200.00"), 1, "Television")
    workflow.add_product("sku_stand", Decimal("25.00"), 2, "TV Stand")
    workflow.next()
    workflow.set_structure(SaleStructure.INSTALLMENT_WITH_DOWN)
    workflow.set_down_payment(Decimal("50.00"))
    workflow.set_interest_rate(Decimal("10"))
    workflow.generate_schedule(date(2024, 1, 31), RecurrenceRule(Frequency.MONTHLY), 4)
    workflow.next()
    assert workflow.step is CheckoutStep.SUBMIT_PAYMENT
    return workflow
