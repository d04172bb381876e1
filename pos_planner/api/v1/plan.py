"""POST /v1/plan/quote and /v1/schedule/preview - stateless plan math"""

from datetime import date

from fastapi import APIRouter, HTTPException

from pos_planner.api.v1.schemas import (
    InstallmentSchema,
    PlanQuoteRequest,
    PlanQuoteResponse,
    SchedulePreviewRequest,
    SchedulePreviewResponse,
)
from pos_planner.domain.exceptions import InvalidPlanInputError
from pos_planner.domain.installments import generate_schedule
from pos_planner.domain.models import RecurrenceRule
from pos_planner.domain.money import to_cents
from pos_planner.domain.plan import calculate_plan
from pos_planner.infrastructure.observability.metrics import schedule_generated_counter

router = APIRouter()


@router.post("/plan/quote", response_model=PlanQuoteResponse)
def quote_plan(request_body: PlanQuoteRequest):
    """
    Derive financed principal and interest for a cart.

    Returns:
        Plan totals; schedule_due is what any schedule must sum to
    """
    try:
        plan = calculate_plan(
            request_body.cart_total,
            request_body.sale_structure,
            request_body.down_payment,
            request_body.interest_rate_percent,
        )
    except InvalidPlanInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PlanQuoteResponse(
        sale_structure=plan.structure,
        down_payment=plan.down_payment,
        financed_principal=plan.financed_principal,
        interest_rate_percent=plan.interest_rate_percent,
        interest_amount=plan.interest_amount,
        schedule_due=plan.schedule_due,
    )


@router.post("/schedule/preview", response_model=SchedulePreviewResponse)
def preview_schedule(request_body: SchedulePreviewRequest):
    """
    Split a total into installments without touching any checkout.

    Returns:
        Installments summing exactly to the total
    """
    rule = RecurrenceRule(kind=request_body.frequency, interval_days=request_body.interval_days)
    try:
        schedule = generate_schedule(
            request_body.total,
            request_body.start_date or date.today(),
            rule,
            request_body.count,
        )
    except InvalidPlanInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    schedule_generated_counter.labels(frequency=rule.kind.value).inc()

    return SchedulePreviewResponse(
        total=to_cents(request_body.total),
        installments=[InstallmentSchema(due_date=line.due_date, amount=line.amount) for line in schedule],
    )
