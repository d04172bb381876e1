"""Unit tests for the Settlement Service client"""

import json
import httpx
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from pos_planner.domain.exceptions import SettlementServiceError
from pos_planner.domain.models import CartLine, SaleStructure
from pos_planner.domain.plan import build_payment, calculate_plan
from pos_planner.domain.reconciliation import freeze_submission
from pos_planner.domain.workflow import CheckoutWorkflow
from pos_planner.infrastructure.clients.settlement import (
    NO_RESPONSE_MESSAGE,
    SettlementClient,
    parse_result,
    to_wire,
)

SALE_DATE = datetime(2024, 1, 31, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def installment_request(installment_workflow: CheckoutWorkflow):
    return installment_workflow.begin_submission("acct_1", sale_date=SALE_DATE)


@pytest.fixture
def full_payment_request():
    cart = [CartLine(product_ref="sku_2", unit_price=Decimal("80.00"), quantity=1)]
    plan = calculate_plan(Decimal("80.00"), SaleStructure.FULL_PAYMENT)
    payment = build_payment(
        Decimal("80.00"), SaleStructure.FULL_PAYMENT, Decimal("0"), "card",
        tendered=Decimal("100.00"), deduction=Decimal("5.00"),
    )
    return freeze_submission("acct_1", "cust_2", cart, plan, payment, sale_date=SALE_DATE)


def _client(handler) -> SettlementClient:
    return SettlementClient(base_url="http://settlement.test", timeout=1.0, transport=httpx.MockTransport(handler))


def test_installment_payload(installment_request):
    body = to_wire(installment_request)

    assert body["account_id"] == "acct_1"
    assert body["customer_id"] == "cust_1"
    assert body["sale_type"] == "installment_with_down"
    assert body["items"][1] == {"product_id": "sku_stand", "quantity": 2, "unit_price": "25.00", "total": "50.00"}
    assert body["payment"] == {"amount": "50.00", "tendered": "50.00", "method": "cash", "change": "0.00"}
    assert body["custom_schedule"][0] == {"due_date": "2024-01-31", "amount": "55.00"}
    assert body["custom_schedule"][1]["due_date"] == date(2024, 2, 29).isoformat()
    assert body["interest_rate"] == "10"
    assert body["interest_amount"] == "20.00"
    assert body["total_with_interest"] == "220.00"
    assert body["total_financed"] == "220.00"
    assert body["sale_date"] == SALE_DATE.isoformat()


def test_full_payment_payload(full_payment_request):
    body = to_wire(full_payment_request)

    assert body["sale_type"] == "full_payment"
    assert body["custom_schedule"] is None
    assert body["total_with_interest"] is None
    assert body["payment"] == {
        "amount": "75.00",
        "tendered": "100.00",
        "method": "card",
        "change": "25.00",
        "deduction": "5.00",
        "net_amount": "75.00",
    }


@pytest.mark.parametrize(
    "data, order_id",
    [
        ([{"new_order_id": 42, "status": "completed"}], 42),
        ({"order_id": "7", "status": "completed"}, 7),
        ([{"order_id": 9}, {"order_id": 10}], 9),
    ],
)
def test_parse_result_shapes(data, order_id):
    assert parse_result(data).order_id == order_id


@pytest.mark.parametrize("data", [[], None, {}])
def test_parse_result_empty_response(data):
    with pytest.raises(SettlementServiceError) as exc_info:
        parse_result(data)
    assert str(exc_info.value) == NO_RESPONSE_MESSAGE


async def test_submit_sale_success(installment_request):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=[{"new_order_id": 1001, "status": "completed"}])

    result = await _client(handler).submit_sale(installment_request)

    assert result.order_id == 1001
    assert result.status == "completed"
    assert seen["url"] == "http://settlement.test/sales"
    assert seen["body"]["total_with_interest"] == "220.00"


async def test_submit_sale_passes_service_message_through(installment_request):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"message": "Customer credit limit exceeded"})

    with pytest.raises(SettlementServiceError) as exc_info:
        await _client(handler).submit_sale(installment_request)
    assert str(exc_info.value) == "Customer credit limit exceeded"


async def test_submit_sale_empty_body(installment_request):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    with pytest.raises(SettlementServiceError) as exc_info:
        await _client(handler).submit_sale(installment_request)
    assert str(exc_info.value) == NO_RESPONSE_MESSAGE


async def test_submit_sale_timeout_is_not_retried(installment_request):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(SettlementServiceError) as exc_info:
        await _client(handler).submit_sale(installment_request)
    assert "timeout" in str(exc_info.value)
    assert len(calls) == 1


async def test_submit_sale_non_json_error(installment_request):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream unavailable")

    with pytest.raises(SettlementServiceError) as exc_info:
        await _client(handler).submit_sale(installment_request)
    assert str(exc_info.value) == "upstream unavailable"
