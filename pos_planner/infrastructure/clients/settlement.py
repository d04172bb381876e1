"""Settlement Service HTTP client - submits finished sales and reads back the order"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from pos_planner.config import settings
from pos_planner.domain.exceptions import SettlementServiceError
from pos_planner.domain.models import SaleStructure, SettlementRequest, SettlementResult
from pos_planner.infrastructure.observability.metrics import settlement_failure_counter, settlement_latency_histogram

logger = logging.getLogger(__name__)

NO_RESPONSE_MESSAGE = "Transaction failed: No response from server."


def _amount(value: Optional[Decimal]) -> Optional[str]:
    # Decimal strings, so the service never does arithmetic on binary floats
    return str(value) if value is not None else None


def to_wire(request: SettlementRequest) -> Dict[str, Any]:
    """Serialize a frozen sale into the Settlement Service contract"""
    payment = request.payment
    payment_body: Dict[str, Any] = {
        "amount": _amount(payment.amount_due_now),
        "tendered": _amount(payment.tendered),
        "method": payment.method,
        "change": _amount(payment.change),
    }
    if request.structure is SaleStructure.FULL_PAYMENT:
        payment_body["deduction"] = _amount(payment.deduction)
        payment_body["net_amount"] = _amount(payment.amount_due_now)

    schedule = None
    if request.structure.is_installment:
        schedule = [
            {"due_date": line.due_date.isoformat(), "amount": _amount(line.amount)}
            for line in request.plan.schedule
        ]

    return {
        "account_id": request.account_id,
        "customer_id": request.customer_ref,
        "sale_type": request.structure.value,
        "items": [
            {
                "product_id": line.product_ref,
                "quantity": line.quantity,
                "unit_price": _amount(line.unit_price),
                "total": _amount(line.line_total),
            }
            for line in request.items
        ],
        "payment": payment_body,
        "installment_plan_id": request.installment_plan_id,
        "custom_schedule": schedule,
        "sale_date": request.sale_date.isoformat(),
        "interest_rate": _amount(request.plan.interest_rate_percent),
        "interest_amount": _amount(request.plan.interest_amount),
        "total_with_interest": _amount(request.total_with_interest),
        "total_financed": _amount(request.total_financed),
    }


def _error_message(response: httpx.Response) -> str:
    """Pull the service's own message out of an error response"""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Settlement Service error: {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if body.get(key):
                return str(body[key])
    return f"Settlement Service error: {response.status_code}"


def parse_result(data: Any) -> SettlementResult:
    """Accept a single object or a list of rows; the first row wins"""
    if isinstance(data, list):
        data = data[0] if data else None
    if not data:
        raise SettlementServiceError(NO_RESPONSE_MESSAGE)
    try:
        order_id = data["order_id"] if "order_id" in data else data["new_order_id"]
        return SettlementResult(order_id=int(order_id), status=data.get("status") or "success")
    except (KeyError, TypeError, ValueError) as e:
        raise SettlementServiceError(f"Invalid settlement response: {e}") from e


class SettlementClient:
    """Client for the external Settlement Service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.settlement_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def submit_sale(self, request: SettlementRequest) -> SettlementResult:
        """
        Send one finished sale and return the created order.

        No retries: a failed submission is surfaced to the cashier, who
        decides whether to resubmit.

        Raises:
            SettlementServiceError: On timeout, HTTP errors, or an unusable response.
                                    The service's own message is passed through unchanged.
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with settlement_latency_histogram.time():
                    response = await client.post(f"{self.base_url}/sales", json=to_wire(request))
                if response.is_error:
                    raise SettlementServiceError(_error_message(response))
                result = parse_result(response.json())

            except httpx.TimeoutException as e:
                settlement_failure_counter.inc()
                raise SettlementServiceError(f"Settlement Service timeout after {self.timeout}s") from e
            except httpx.RequestError as e:
                settlement_failure_counter.inc()
                raise SettlementServiceError(f"Settlement Service unreachable: {e}") from e
            except ValueError as e:
                settlement_failure_counter.inc()
                raise SettlementServiceError(f"Invalid settlement response: {e}") from e
            except SettlementServiceError:
                settlement_failure_counter.inc()
                raise

        logger.info("Sale settled", extra={"order_id": result.order_id, "status": result.status})
        return result
