"""/v1/checkout - multi-step checkout sessions and sale submission"""

import time
import uuid
import logging
from datetime import date
from typing import Any, Callable, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_planner.api.v1.schemas import (
    CartItemRequest,
    CartLineSchema,
    CheckoutResponse,
    CustomerRequest,
    InstallmentSchema,
    PaymentRequest,
    PaymentSchema,
    PlanRequest,
    PlanSchema,
    QuantityRequest,
    ReceiptResponse,
    ScheduleOptions,
    ScheduleReplaceRequest,
)
from pos_planner.api.dependencies import get_account_id, get_request_id, get_settlement_client
from pos_planner.config import settings
from pos_planner.infrastructure.database.session import get_db
from pos_planner.infrastructure.database.models import CheckoutSessionRecord
from pos_planner.infrastructure.database.repositories import CheckoutSessionRepository, ReceiptRepository
from pos_planner.infrastructure.clients.settlement import SettlementClient
from pos_planner.domain.exceptions import (
    InvalidPlanInputError,
    MissingAccountContextError,
    SettlementServiceError,
    StepGuardError,
    SubmissionBlockedError,
    SubmissionInFlightError,
)
from pos_planner.domain.models import CheckoutSession, CheckoutStep, InstallmentLine, RecurrenceRule
from pos_planner.domain.workflow import CheckoutWorkflow
from pos_planner.infrastructure.observability.metrics import record_submission, schedule_generated_counter
from pos_planner.infrastructure.observability.logging import log_blocked_submission, log_submission

router = APIRouter()


def to_response(session_id: uuid.UUID, workflow: CheckoutWorkflow) -> CheckoutResponse:
    """Project the workflow's current state for the client"""
    session = workflow.session
    plan = workflow.plan
    payment = workflow.payment
    guard_message = workflow.guard_failure()

    return CheckoutResponse(
        session_id=str(session_id),
        step=session.step.name.lower(),
        step_index=int(session.step),
        customer_ref=session.customer_ref,
        cart=[
            CartLineSchema(
                product_ref=line.product_ref,
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                line_total=line.line_total,
            )
            for line in session.cart
        ],
        cart_total=workflow.cart_total,
        plan=PlanSchema(
            sale_structure=plan.structure,
            down_payment=plan.down_payment,
            financed_principal=plan.financed_principal,
            interest_rate_percent=plan.interest_rate_percent,
            interest_amount=plan.interest_amount,
            schedule_due=plan.schedule_due,
            schedule=[InstallmentSchema(due_date=line.due_date, amount=line.amount) for line in plan.schedule],
            schedule_total=plan.schedule_total,
            reconciled=plan.is_reconciled,
        ),
        payment=PaymentSchema(
            amount_due_now=payment.amount_due_now,
            tendered=payment.tendered,
            method=payment.method,
            change=payment.change,
            deduction=payment.deduction,
        ),
        can_advance=guard_message is None,
        guard_message=guard_message,
        submission_status=session.submission_status.value,
        submission_error=session.submission_error,
    )


def _issue_detail(step: CheckoutStep, message: str) -> dict:
    return {"step": step.name.lower(), "message": message}


def _load(repo: CheckoutSessionRepository, session_id: str) -> Tuple[CheckoutSessionRecord, CheckoutWorkflow]:
    try:
        session_uuid = uuid.UUID(session_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid session ID format")

    record = repo.get(session_uuid)
    if not record:
        raise HTTPException(status_code=404, detail="Checkout session not found")

    workflow = CheckoutWorkflow(
        CheckoutSession.from_dict(record.state),
        default_payment_method=settings.default_payment_method,
    )
    return record, workflow


def _apply(db: Session, session_id: str, action: Callable[[CheckoutWorkflow], Any]) -> CheckoutResponse:
    """Load a session, run one workflow action, persist and project the result"""
    repo = CheckoutSessionRepository(db)
    record, workflow = _load(repo, session_id)

    try:
        action(workflow)
    except StepGuardError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": e.message, "issues": [_issue_detail(e.step, e.message)]},
        )
    except InvalidPlanInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubmissionInFlightError as e:
        raise HTTPException(status_code=409, detail=str(e))

    repo.save(record, workflow.session)
    db.commit()
    return to_response(record.id, workflow)


@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
def create_checkout(
    db: Session = Depends(get_db),
    account_id: Optional[str] = Depends(get_account_id),
):
    """Start a new checkout at SelectCustomer"""
    workflow = CheckoutWorkflow(default_payment_method=settings.default_payment_method)
    record = CheckoutSessionRepository(db).create(workflow.session, account_id=account_id)
    db.commit()
    return to_response(record.id, workflow)


@router.get("/checkout/{session_id}", response_model=CheckoutResponse)
def get_checkout(session_id: str, db: Session = Depends(get_db)):
    """Current state of a checkout, with all derived totals recomputed"""
    record, workflow = _load(CheckoutSessionRepository(db), session_id)
    return to_response(record.id, workflow)


@router.delete("/checkout/{session_id}", status_code=204)
def cancel_checkout(session_id: str, db: Session = Depends(get_db)):
    """Cancel a checkout, discarding everything collected so far"""
    repo = CheckoutSessionRepository(db)
    record, workflow = _load(repo, session_id)
    if workflow.in_flight:
        raise HTTPException(status_code=409, detail="A submission is already in progress for this checkout")
    repo.delete(record)
    db.commit()


@router.put("/checkout/{session_id}/customer", response_model=CheckoutResponse)
def select_customer(session_id: str, request_body: CustomerRequest, db: Session = Depends(get_db)):
    return _apply(db, session_id, lambda wf: wf.select_customer(request_body.customer_ref))


@router.post("/checkout/{session_id}/cart", response_model=CheckoutResponse)
def add_cart_item(session_id: str, request_body: CartItemRequest, db: Session = Depends(get_db)):
    """Add a product; an existing line's quantity is increased instead"""
    return _apply(
        db,
        session_id,
        lambda wf: wf.add_product(
            request_body.product_ref,
            request_body.unit_price,
            request_body.quantity,
            request_body.name,
        ),
    )


@router.patch("/checkout/{session_id}/cart/{product_ref}", response_model=CheckoutResponse)
def update_cart_item(session_id: str, product_ref: str, request_body: QuantityRequest, db: Session = Depends(get_db)):
    return _apply(db, session_id, lambda wf: wf.set_quantity(product_ref, request_body.quantity))


@router.delete("/checkout/{session_id}/cart/{product_ref}", response_model=CheckoutResponse)
def remove_cart_item(session_id: str, product_ref: str, db: Session = Depends(get_db)):
    return _apply(db, session_id, lambda wf: wf.remove_product(product_ref))


@router.put("/checkout/{session_id}/plan", response_model=CheckoutResponse)
def configure_plan(session_id: str, request_body: PlanRequest, db: Session = Depends(get_db)):
    """
    Choose the sale structure, down payment and interest rate.

    Switching to full payment drops the schedule; any structure other than
    installment-with-down zeroes the down payment.
    """

    def action(wf: CheckoutWorkflow) -> None:
        wf.set_structure(request_body.sale_structure)
        if request_body.down_payment is not None:
            wf.set_down_payment(request_body.down_payment)
        if request_body.interest_rate_percent is not None:
            wf.set_interest_rate(request_body.interest_rate_percent)

    return _apply(db, session_id, action)


@router.post("/checkout/{session_id}/schedule", response_model=CheckoutResponse)
def generate_checkout_schedule(session_id: str, request_body: ScheduleOptions, db: Session = Depends(get_db)):
    """Regenerate the schedule to cover principal plus interest exactly"""
    rule = RecurrenceRule(kind=request_body.frequency, interval_days=request_body.interval_days)

    def action(wf: CheckoutWorkflow) -> None:
        wf.generate_schedule(request_body.start_date or date.today(), rule, request_body.count)
        schedule_generated_counter.labels(frequency=rule.kind.value).inc()

    return _apply(db, session_id, action)


@router.put("/checkout/{session_id}/schedule", response_model=CheckoutResponse)
def replace_checkout_schedule(session_id: str, request_body: ScheduleReplaceRequest, db: Session = Depends(get_db)):
    """Store a hand-edited schedule; it must still reconcile before submission"""
    lines = [InstallmentLine(due_date=item.due_date, amount=item.amount) for item in request_body.installments]
    return _apply(db, session_id, lambda wf: wf.replace_schedule(lines))


@router.put("/checkout/{session_id}/payment", response_model=CheckoutResponse)
def update_payment(session_id: str, request_body: PaymentRequest, db: Session = Depends(get_db)):
    if request_body.method is not None and request_body.method not in settings.payment_methods:
        raise HTTPException(status_code=400, detail=f"Unsupported payment method: {request_body.method}")

    def action(wf: CheckoutWorkflow) -> None:
        if request_body.deduction is not None:
            wf.set_deduction(request_body.deduction)
        if request_body.method is not None:
            wf.set_payment_method(request_body.method)
        if request_body.tendered is not None:
            wf.set_tendered(request_body.tendered)

    return _apply(db, session_id, action)


@router.post("/checkout/{session_id}/next", response_model=CheckoutResponse)
def next_step(session_id: str, db: Session = Depends(get_db)):
    return _apply(db, session_id, lambda wf: wf.next())


@router.post("/checkout/{session_id}/back", response_model=CheckoutResponse)
def previous_step(session_id: str, db: Session = Depends(get_db)):
    return _apply(db, session_id, lambda wf: wf.back())


@router.post("/checkout/{session_id}/goto/{step}", response_model=CheckoutResponse)
def go_to_step(session_id: str, step: CheckoutStep, db: Session = Depends(get_db)):
    return _apply(db, session_id, lambda wf: wf.go_to(step))


@router.post("/checkout/{session_id}/reset", response_model=CheckoutResponse)
def reset_checkout(session_id: str, db: Session = Depends(get_db)):
    return _apply(db, session_id, lambda wf: wf.reset())


@router.post("/checkout/{session_id}/submit", response_model=ReceiptResponse)
async def submit_checkout(
    session_id: str,
    request: Request,
    db: Session = Depends(get_db),
    account_id: Optional[str] = Depends(get_account_id),
    settlement_client: SettlementClient = Depends(get_settlement_client),
):
    """
    Settle the sale.

    Flow:
    1. Validate and freeze the sale (no network call if anything fails)
    2. Persist the session as in flight so a second submit is refused
    3. Send the sale to the Settlement Service
    4. On success store the receipt and reset the session;
       on failure keep the session for retry and pass the message through
    """
    start_time = time.time()
    request_id = get_request_id(request)
    repo = CheckoutSessionRepository(db)
    record, workflow = _load(repo, session_id)
    structure = workflow.session.structure.value

    # 1-2. Freeze and mark in flight
    try:
        sale = workflow.begin_submission(account_id)
    except MissingAccountContextError as e:
        logging.warning(f"Submission without account context: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=401, detail=str(e))
    except SubmissionInFlightError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SubmissionBlockedError as e:
        record_submission("blocked", structure)
        log_blocked_submission(request_id, session_id, e.issues)
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "issues": [_issue_detail(i.step, i.message) for i in e.issues]},
        )
    except StepGuardError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": e.message, "issues": [_issue_detail(e.step, e.message)]},
        )

    repo.save(record, workflow.session)
    db.commit()

    # 3. Settle
    try:
        result = await settlement_client.submit_sale(sale)

    except SettlementServiceError as e:
        workflow.fail_submission(str(e))
        repo.save(record, workflow.session)
        db.commit()
        record_submission("failed", structure)
        logging.error(f"Settlement error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail=str(e))

    except Exception as e:
        workflow.fail_submission("Unexpected error while settling the sale")
        repo.save(record, workflow.session)
        db.commit()
        record_submission("failed", structure)
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    # 4. Receipt and reset
    receipt = workflow.complete_submission(sale, result)
    try:
        repo.save(record, workflow.session)
        ReceiptRepository(db).create(receipt)
        db.commit()
    except SQLAlchemyError as e:
        # The sale is already settled; the session must not stay in flight
        db.rollback()
        logging.error(
            f"Sale settled as order {receipt.order_id} but its receipt was not stored: {e}",
            extra={"request_id": request_id, "order_id": receipt.order_id},
        )
        repo.save(record, workflow.session)
        db.commit()

    duration_ms = (time.time() - start_time) * 1000
    record_submission("succeeded", structure)
    log_submission(request_id, session_id, structure, "succeeded", receipt.order_id, duration_ms)

    return ReceiptResponse(**receipt.to_dict())
