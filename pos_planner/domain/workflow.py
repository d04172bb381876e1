"""Checkout workflow - step sequencing, per-step guards and submission lifecycle"""

import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Protocol

from pos_planner.domain.exceptions import (
    InvalidPlanInputError,
    StepGuardError,
    SubmissionInFlightError,
)
from pos_planner.domain.installments import generate_schedule
from pos_planner.domain.models import (
    CartLine,
    CheckoutSession,
    CheckoutStep,
    InstallmentLine,
    PaymentPlan,
    PaymentSubmission,
    Receipt,
    RecurrenceRule,
    SaleStructure,
    SettlementRequest,
    SettlementResult,
    SubmissionStatus,
)
from pos_planner.domain.money import ZERO, sum_cents, to_cents, to_decimal
from pos_planner.domain.plan import build_payment, calculate_plan
from pos_planner.domain.reconciliation import freeze_submission, schedule_mismatch

logger = logging.getLogger(__name__)


class SettlementGateway(Protocol):
    """Anything that can settle a frozen sale"""

    async def submit_sale(self, request: SettlementRequest) -> SettlementResult: ...


class CheckoutWorkflow:
    """
    Drives one CheckoutSession through
    SelectCustomer -> SelectCart -> ConfigurePlan -> SubmitPayment.

    Derived values (plan, payment, totals) are recomputed from the session on
    every access; the workflow holds no cached state of its own.
    """

    def __init__(self, session: Optional[CheckoutSession] = None, default_payment_method: str = "cash"):
        self.default_payment_method = default_payment_method
        self.session = session or CheckoutSession(payment_method=default_payment_method)

    # Derived values

    @property
    def step(self) -> CheckoutStep:
        return self.session.step

    @property
    def cart_total(self) -> Decimal:
        return sum_cents(line.line_total for line in self.session.cart)

    @property
    def plan(self) -> PaymentPlan:
        return calculate_plan(
            self.cart_total,
            self.session.structure,
            self.session.down_payment,
            self.session.interest_rate_percent,
            self.session.schedule,
        )

    @property
    def payment(self) -> PaymentSubmission:
        return build_payment(
            self.cart_total,
            self.session.structure,
            self.session.down_payment,
            self.session.payment_method,
            tendered=self.session.tendered,
            deduction=self.session.deduction,
        )

    @property
    def in_flight(self) -> bool:
        return self.session.submission_status is SubmissionStatus.IN_FLIGHT

    # Navigation

    def guard_failure(self, step: Optional[CheckoutStep] = None) -> Optional[str]:
        """Reason the given step (default: current) may not advance, or None"""
        step = self.session.step if step is None else step
        if step is CheckoutStep.SELECT_CUSTOMER:
            return None if self.session.customer_ref else "Select a customer to continue"
        if step is CheckoutStep.SELECT_CART:
            return None if self.session.cart else "Add at least one product to continue"
        if step is CheckoutStep.CONFIGURE_PLAN:
            return schedule_mismatch(self.plan)
        return "Payment is the last step; submit the sale to finish"

    def can_advance(self) -> bool:
        return self.guard_failure() is None

    def next(self) -> CheckoutStep:
        """Advance one step if the current step's guard holds"""
        self._ensure_editable()
        failure = self.guard_failure()
        if failure:
            logger.info("Step guard refused advance", extra={"step": self.session.step.name, "reason": failure})
            raise StepGuardError(self.session.step, failure)
        self.session.step = CheckoutStep(self.session.step + 1)
        return self.session.step

    def back(self) -> CheckoutStep:
        """Go back one step; downstream data is kept for editing"""
        self._ensure_editable()
        if self.session.step > CheckoutStep.SELECT_CUSTOMER:
            self.session.step = CheckoutStep(self.session.step - 1)
        return self.session.step

    def go_to(self, step: CheckoutStep) -> CheckoutStep:
        """Jump back freely; jumping forward walks every intermediate guard"""
        self._ensure_editable()
        step = CheckoutStep(step)
        if step <= self.session.step:
            self.session.step = step
            return step
        while self.session.step < step:
            self.next()
        return self.session.step

    def reset(self) -> None:
        """Discard the whole session and start over at SelectCustomer"""
        self._ensure_editable()
        self.session = CheckoutSession(payment_method=self.default_payment_method)

    # SelectCustomer

    def select_customer(self, customer_ref: str) -> None:
        self._ensure_editable()
        self.session.customer_ref = customer_ref

    # SelectCart

    def add_product(self, product_ref: str, unit_price: Decimal, quantity: int = 1, name: str = "") -> CartLine:
        """Add a product; adding one already in the cart bumps its quantity"""
        self._ensure_editable()
        unit_price = to_cents(unit_price)
        if unit_price < ZERO:
            raise InvalidPlanInputError(f"Unit price cannot be negative, got: {unit_price}")
        if quantity < 1:
            raise InvalidPlanInputError(f"Quantity must be at least 1, got: {quantity}")

        for idx, line in enumerate(self.session.cart):
            if line.product_ref == product_ref:
                updated = replace(line, quantity=line.quantity + quantity)
                self.session.cart[idx] = updated
                break
        else:
            updated = CartLine(product_ref=product_ref, unit_price=unit_price, quantity=quantity, name=name)
            self.session.cart.append(updated)

        self._amount_due_changed()
        return updated

    def set_quantity(self, product_ref: str, quantity: int) -> CartLine:
        """Change a line's quantity, never below 1"""
        self._ensure_editable()
        idx = self._line_index(product_ref)
        updated = replace(self.session.cart[idx], quantity=max(1, int(quantity)))
        self.session.cart[idx] = updated
        self._amount_due_changed()
        return updated

    def remove_product(self, product_ref: str) -> None:
        self._ensure_editable()
        del self.session.cart[self._line_index(product_ref)]
        self._amount_due_changed()

    # ConfigurePlan

    def set_structure(self, structure: SaleStructure) -> None:
        """
        Switch sale structure.

        Leaving installments clears the schedule; only installment-with-down
        keeps a down payment.
        """
        self._ensure_editable()
        structure = SaleStructure(structure)
        self.session.structure = structure
        if not structure.is_installment:
            self.session.schedule = []
        if structure is not SaleStructure.INSTALLMENT_WITH_DOWN:
            self.session.down_payment = ZERO
        self._amount_due_changed()

    def set_down_payment(self, amount: Decimal) -> Decimal:
        self._ensure_editable()
        amount = to_cents(amount)
        if amount < ZERO:
            raise InvalidPlanInputError(f"Down payment cannot be negative, got: {amount}")
        if self.session.structure is not SaleStructure.INSTALLMENT_WITH_DOWN:
            amount = ZERO
        self.session.down_payment = amount
        self._amount_due_changed()
        return amount

    def set_interest_rate(self, rate_percent: Decimal) -> None:
        self._ensure_editable()
        rate_percent = to_decimal(rate_percent)
        if rate_percent < ZERO:
            raise InvalidPlanInputError(f"Interest rate cannot be negative, got: {rate_percent}")
        self.session.interest_rate_percent = rate_percent

    def generate_schedule(self, start_date: date, rule: RecurrenceRule, count: int) -> List[InstallmentLine]:
        """Regenerate the schedule from scratch to cover principal plus interest"""
        self._ensure_editable()
        self._ensure_installment()
        due = self.plan.schedule_due
        if due <= ZERO:
            raise InvalidPlanInputError("Nothing is left to finance; no schedule to generate")
        schedule = generate_schedule(due, start_date, rule, count)
        self.session.schedule = schedule
        return schedule

    def replace_schedule(self, lines: Iterable[InstallmentLine]) -> None:
        """Install a hand-edited schedule; reconciliation decides if it is usable"""
        self._ensure_editable()
        self._ensure_installment()
        self.session.schedule = sorted(lines, key=lambda line: line.due_date)

    # SubmitPayment

    def set_tendered(self, amount: Decimal) -> None:
        self._ensure_editable()
        amount = to_cents(amount)
        if amount < ZERO:
            raise InvalidPlanInputError(f"Tendered amount cannot be negative, got: {amount}")
        self.session.tendered = amount

    def set_payment_method(self, method: str) -> None:
        self._ensure_editable()
        self.session.payment_method = method

    def set_deduction(self, amount: Decimal) -> None:
        self._ensure_editable()
        amount = to_cents(amount)
        if amount < ZERO:
            raise InvalidPlanInputError(f"Deduction cannot be negative, got: {amount}")
        self.session.deduction = amount
        self._amount_due_changed()

    # Submission lifecycle: idle -> in_flight -> succeeded | failed

    def begin_submission(self, account_id: Optional[str], sale_date: Optional[datetime] = None) -> SettlementRequest:
        """
        Validate and freeze the sale, marking the session in flight.

        Raises:
            SubmissionInFlightError: Another submission is outstanding
            StepGuardError: Session is not on the payment step
            MissingAccountContextError / SubmissionBlockedError: see freeze_submission
        """
        self._ensure_editable()
        if self.session.step is not CheckoutStep.SUBMIT_PAYMENT:
            raise StepGuardError(self.session.step, "Finish the earlier steps before submitting")

        request = freeze_submission(
            account_id,
            self.session.customer_ref,
            list(self.session.cart),
            self.plan,
            self.payment,
            sale_date=sale_date,
        )
        self.session.submission_status = SubmissionStatus.IN_FLIGHT
        self.session.submission_error = None
        return request

    def complete_submission(self, request: SettlementRequest, result: SettlementResult) -> Receipt:
        """Settlement accepted: snapshot the receipt and start a fresh session"""
        receipt = Receipt.from_settlement(request, result)
        self.session = CheckoutSession(
            payment_method=self.default_payment_method,
            submission_status=SubmissionStatus.SUCCEEDED,
        )
        return receipt

    def fail_submission(self, message: str) -> None:
        """Settlement rejected: keep everything so the cashier can retry or go back"""
        self.session.submission_status = SubmissionStatus.FAILED
        self.session.submission_error = message

    async def submit(self, gateway: SettlementGateway, account_id: Optional[str]) -> Receipt:
        """Run the full lifecycle against a settlement gateway"""
        request = self.begin_submission(account_id)
        try:
            result = await gateway.submit_sale(request)
        except Exception as e:
            self.fail_submission(str(e))
            raise
        return self.complete_submission(request, result)

    # Internals

    def _ensure_editable(self) -> None:
        if self.in_flight:
            raise SubmissionInFlightError("A submission is already in progress for this checkout")

    def _ensure_installment(self) -> None:
        if not self.session.structure.is_installment:
            raise InvalidPlanInputError("Full payment sales have no installment schedule")

    def _line_index(self, product_ref: str) -> int:
        for idx, line in enumerate(self.session.cart):
            if line.product_ref == product_ref:
                return idx
        raise InvalidPlanInputError(f"Product {product_ref} is not in the cart")

    def _amount_due_changed(self) -> None:
        # Tendered follows the amount due until the cashier overrides it again
        self.session.tendered = None
