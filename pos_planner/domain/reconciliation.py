"""Reconciliation checks that gate plan progression and sale submission"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from pos_planner.domain.exceptions import MissingAccountContextError, SubmissionBlockedError, ValidationIssue
from pos_planner.domain.models import (
    CartLine,
    CheckoutStep,
    PaymentPlan,
    PaymentSubmission,
    SettlementRequest,
)


def schedule_mismatch(plan: PaymentPlan) -> Optional[str]:
    """
    Compare the schedule against principal plus interest at cent precision.

    Returns a message describing the mismatch, or None when reconciled.
    Full payments have no schedule and always reconcile.
    """
    if not plan.structure.is_installment:
        return None
    if plan.schedule_total == plan.schedule_due:
        return None
    if not plan.schedule:
        return f"Generate a schedule covering {plan.schedule_due} before continuing"
    return (
        f"Schedule totals {plan.schedule_total} but {plan.schedule_due} "
        f"(principal {plan.financed_principal} + interest {plan.interest_amount}) is required"
    )


def validate_submission(
    customer_ref: Optional[str],
    cart: Sequence[CartLine],
    plan: PaymentPlan,
    payment: PaymentSubmission,
) -> List[ValidationIssue]:
    """
    Collect every reason the sale cannot be submitted yet.

    Requirements:
    - Customer selected
    - Cart non-empty
    - Tendered covers the amount due now whenever something is due
    - Installment schedules sum exactly to principal + interest
    """
    issues = []

    if not customer_ref:
        issues.append(ValidationIssue(CheckoutStep.SELECT_CUSTOMER, "Select a customer before submitting"))

    if not cart:
        issues.append(ValidationIssue(CheckoutStep.SELECT_CART, "Add at least one product to the cart"))

    mismatch = schedule_mismatch(plan)
    if mismatch:
        issues.append(ValidationIssue(CheckoutStep.CONFIGURE_PLAN, mismatch))

    if not payment.is_sufficient:
        issues.append(
            ValidationIssue(
                CheckoutStep.SUBMIT_PAYMENT,
                f"Tendered {payment.tendered} does not cover {payment.amount_due_now} due now",
            )
        )

    return issues


def freeze_submission(
    account_id: Optional[str],
    customer_ref: Optional[str],
    cart: Sequence[CartLine],
    plan: PaymentPlan,
    payment: PaymentSubmission,
    sale_date: Optional[datetime] = None,
) -> SettlementRequest:
    """
    Main entry point: validate and freeze the sale into an immutable payload.

    Raises:
        MissingAccountContextError: No account/seller context (checked first)
        SubmissionBlockedError: Any reconciliation check failed
    """
    if not account_id:
        raise MissingAccountContextError("Missing account or seller context")

    issues = validate_submission(customer_ref, cart, plan, payment)
    if issues:
        raise SubmissionBlockedError(issues)

    return SettlementRequest(
        account_id=account_id,
        customer_ref=customer_ref,
        structure=plan.structure,
        items=tuple(cart),
        payment=payment,
        plan=plan,
        sale_date=sale_date or datetime.now(timezone.utc),
    )
