"""Payment plan calculation - financed principal and interest for a sale"""

from decimal import Decimal
from typing import Iterable, Optional

from pos_planner.domain.exceptions import InvalidPlanInputError
from pos_planner.domain.models import InstallmentLine, PaymentPlan, PaymentSubmission, SaleStructure
from pos_planner.domain.money import ZERO, to_cents, to_decimal


def effective_down_payment(cart_total: Decimal, structure: SaleStructure, down_payment: Decimal) -> Decimal:
    """Down payment only exists for installment-with-down sales and never exceeds the cart"""
    if structure is SaleStructure.INSTALLMENT_WITH_DOWN:
        return min(to_cents(down_payment), max(to_cents(cart_total), ZERO))
    return ZERO


def financed_principal(cart_total: Decimal, structure: SaleStructure, down_payment: Decimal) -> Decimal:
    """Portion of the cart total left to be financed after the down payment"""
    if structure is SaleStructure.FULL_PAYMENT:
        return ZERO
    if structure is SaleStructure.INSTALLMENT_WITH_DOWN:
        return max(to_cents(cart_total - down_payment), ZERO)
    if structure is SaleStructure.PURE_INSTALLMENT:
        return to_cents(cart_total)
    raise InvalidPlanInputError(f"Unsupported sale structure: {structure}")


def interest_amount(principal: Decimal, interest_rate_percent: Decimal, structure: SaleStructure) -> Decimal:
    """Simple interest on the financed principal, rounded to cents"""
    if not structure.is_installment:
        return ZERO
    return to_cents(principal * interest_rate_percent / 100)


def calculate_plan(
    cart_total: Decimal,
    structure: SaleStructure,
    down_payment: Decimal = ZERO,
    interest_rate_percent: Decimal = ZERO,
    schedule: Iterable[InstallmentLine] = (),
) -> PaymentPlan:
    """
    Derive the payment plan for a cart.

    - FullPayment: nothing financed, no interest, no schedule
    - InstallmentWithDown: principal = max(cart_total - down_payment, 0)
    - PureInstallment: principal = cart_total, down payment forced to 0

    The resulting plan's schedule_due is the target the schedule must hit.
    """
    cart_total = to_cents(cart_total)
    interest_rate_percent = to_decimal(interest_rate_percent)
    if cart_total < ZERO:
        raise InvalidPlanInputError(f"Cart total cannot be negative, got: {cart_total}")
    if down_payment < ZERO:
        raise InvalidPlanInputError(f"Down payment cannot be negative, got: {down_payment}")
    if interest_rate_percent < ZERO:
        raise InvalidPlanInputError(f"Interest rate cannot be negative, got: {interest_rate_percent}")

    down = effective_down_payment(cart_total, structure, down_payment)
    principal = financed_principal(cart_total, structure, down)
    interest = interest_amount(principal, interest_rate_percent, structure)

    return PaymentPlan(
        structure=structure,
        down_payment=down,
        interest_rate_percent=interest_rate_percent if structure.is_installment else ZERO,
        financed_principal=principal,
        interest_amount=interest,
        schedule=tuple(schedule) if structure.is_installment else (),
    )


def amount_due_now(cart_total: Decimal, structure: SaleStructure, down_payment: Decimal, deduction: Decimal = ZERO) -> Decimal:
    """Cash owed at the counter: net total, the down payment, or nothing"""
    if structure is SaleStructure.FULL_PAYMENT:
        return max(to_cents(cart_total - deduction), ZERO)
    if structure is SaleStructure.INSTALLMENT_WITH_DOWN:
        return effective_down_payment(cart_total, structure, down_payment)
    return ZERO


def build_payment(
    cart_total: Decimal,
    structure: SaleStructure,
    down_payment: Decimal,
    method: str,
    tendered: Optional[Decimal] = None,
    deduction: Decimal = ZERO,
) -> PaymentSubmission:
    """Payment draft; an unset tendered amount defaults to the amount due now"""
    if deduction < ZERO:
        raise InvalidPlanInputError(f"Deduction cannot be negative, got: {deduction}")
    due = amount_due_now(cart_total, structure, down_payment, deduction)
    return PaymentSubmission(
        amount_due_now=due,
        tendered=to_cents(tendered) if tendered is not None else due,
        method=method,
        deduction=to_cents(deduction) if structure is SaleStructure.FULL_PAYMENT else None,
    )
