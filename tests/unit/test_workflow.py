"""Unit tests for the checkout workflow state machine"""

import pytest
from datetime import date
from decimal import Decimal
from pos_planner.domain.exceptions import (
    InvalidPlanInputError,
    MissingAccountContextError,
    SettlementServiceError,
    StepGuardError,
    SubmissionBlockedError,
    SubmissionInFlightError,
)
from pos_planner.domain.models import (
    CheckoutSession,
    CheckoutStep,
    Frequency,
    InstallmentLine,
    RecurrenceRule,
    SaleStructure,
    SubmissionStatus,
)
from pos_planner.domain.workflow import CheckoutWorkflow

MONTHLY = RecurrenceRule(Frequency.MONTHLY)


def test_select_customer_guard():
    workflow = CheckoutWorkflow()

    with pytest.raises(StepGuardError) as exc_info:
        workflow.next()
    assert exc_info.value.step is CheckoutStep.SELECT_CUSTOMER

    workflow.select_customer("cust_1")
    assert workflow.next() is CheckoutStep.SELECT_CART


def test_cart_guard_requires_a_line():
    workflow = CheckoutWorkflow()
    workflow.select_customer("cust_1")
    workflow.next()

    assert not workflow.can_advance()
    workflow.add_product("sku_1", Decimal("10.00"))
    assert workflow.next() is CheckoutStep.CONFIGURE_PLAN


def test_full_payment_plan_always_advances():
    workflow = CheckoutWorkflow()
    workflow.select_customer("cust_1")
    workflow.next()
    workflow.add_product("sku_1", Decimal("10.00"))
    workflow.next()

    assert workflow.next() is CheckoutStep.SUBMIT_PAYMENT


def test_installment_plan_guard_blocks_on_one_cent(installment_workflow: CheckoutWorkflow):
    workflow = installment_workflow
    workflow.back()
    lines = list(workflow.session.schedule)
    lines[0] = InstallmentLine(lines[0].due_date, lines[0].amount + Decimal("0.01"))
    workflow.replace_schedule(lines)

    with pytest.raises(StepGuardError) as exc_info:
        workflow.next()
    assert exc_info.value.step is CheckoutStep.CONFIGURE_PLAN
    assert "220.01" in exc_info.value.message


def test_schedule_covers_principal_plus_interest(installment_workflow: CheckoutWorkflow):
    plan = installment_workflow.plan

    assert plan.financed_principal == Decimal("200.00")
    assert plan.interest_amount == Decimal("20.00")
    assert plan.schedule_total == Decimal("220.00")
    assert [line.amount for line in plan.schedule] == [Decimal("55.00")] * 4


def test_submit_payment_has_no_forward_transition(installment_workflow: CheckoutWorkflow):
    with pytest.raises(StepGuardError):
        installment_workflow.next()


def test_back_keeps_downstream_data(installment_workflow: CheckoutWorkflow):
    workflow = installment_workflow
    workflow.back()
    workflow.back()
    workflow.back()

    assert workflow.step is CheckoutStep.SELECT_CUSTOMER
    assert workflow.back() is CheckoutStep.SELECT_CUSTOMER
    assert workflow.session.customer_ref == "cust_1"
    assert len(workflow.session.cart) == 2
    assert len(workflow.session.schedule) == 4


def test_go_to_walks_guards_forward(installment_workflow: CheckoutWorkflow):
    workflow = installment_workflow
    workflow.go_to(CheckoutStep.SELECT_CUSTOMER)
    assert workflow.go_to(CheckoutStep.SUBMIT_PAYMENT) is CheckoutStep.SUBMIT_PAYMENT

    workflow.go_to(CheckoutStep.SELECT_CART)
    workflow.remove_product("sku_tv")
    workflow.remove_product("sku_stand")
    with pytest.raises(StepGuardError):
        workflow.go_to(CheckoutStep.SUBMIT_PAYMENT)
    assert workflow.step is CheckoutStep.SELECT_CART


def test_reset_clears_everything(installment_workflow: CheckoutWorkflow):
    installment_workflow.reset()

    assert installment_workflow.session == CheckoutSession()


def test_adding_same_product_increments_quantity():
    workflow = CheckoutWorkflow()
    workflow.add_product("sku_1", Decimal("19.99"))
    line = workflow.add_product("sku_1", Decimal("19.99"), 2)

    assert len(workflow.session.cart) == 1
    assert line.quantity == 3
    assert workflow.cart_total == Decimal("59.97")


def test_quantity_clamps_to_one_and_unknown_product_rejected():
    workflow = CheckoutWorkflow()
    workflow.add_product("sku_1", Decimal("5.00"), 3)

    assert workflow.set_quantity("sku_1", 0).quantity == 1
    with pytest.raises(InvalidPlanInputError):
        workflow.set_quantity("missing", 2)
    with pytest.raises(InvalidPlanInputError):
        workflow.add_product("sku_2", Decimal("-1.00"))


def test_leaving_installments_clears_schedule(installment_workflow: CheckoutWorkflow):
    workflow = installment_workflow
    workflow.set_structure(SaleStructure.FULL_PAYMENT)

    assert workflow.session.schedule == []
    assert workflow.session.down_payment == Decimal("0")
    with pytest.raises(InvalidPlanInputError):
        workflow.generate_schedule(date(2024, 1, 1), MONTHLY, 3)


def test_pure_installment_forces_down_payment_to_zero(installment_workflow: CheckoutWorkflow):
    workflow = installment_workflow
    workflow.set_structure(SaleStructure.PURE_INSTALLMENT)

    assert workflow.session.down_payment == Decimal("0")
    assert workflow.set_down_payment(Decimal("80.00")) == Decimal("0")
    assert workflow.plan.financed_principal == Decimal("250.00")
    # Schedule built for 220.00 no longer covers 275.00
    assert not workflow.plan.is_reconciled


def test_tendered_follows_amount_due_until_overridden(installment_workflow: CheckoutWorkflow):
    workflow = installment_workflow
    assert workflow.payment.tendered == Decimal("50.00")

    workflow.set_tendered(Decimal("60.00"))
    assert workflow.payment.change == Decimal("10.00")

    workflow.set_down_payment(Decimal("70.00"))
    assert workflow.payment.tendered == Decimal("70.00")


async def test_submit_success_resets_session(installment_workflow: CheckoutWorkflow, settlement):
    receipt = await installment_workflow.submit(settlement, "acct_1")

    assert receipt.order_id == 5001
    assert receipt.grand_total == Decimal("220.00")
    assert receipt.final_total == Decimal("270.00")
    assert receipt.cart_total == Decimal("250.00")
    assert len(settlement.requests) == 1
    assert installment_workflow.session.cart == []
    assert installment_workflow.step is CheckoutStep.SELECT_CUSTOMER
    assert installment_workflow.session.submission_status is SubmissionStatus.SUCCEEDED


async def test_submit_failure_keeps_session_for_retry(installment_workflow: CheckoutWorkflow, settlement):
    settlement.error = "Customer credit limit exceeded"

    with pytest.raises(SettlementServiceError):
        await installment_workflow.submit(settlement, "acct_1")

    session = installment_workflow.session
    assert session.submission_status is SubmissionStatus.FAILED
    assert session.submission_error == "Customer credit limit exceeded"
    assert session.step is CheckoutStep.SUBMIT_PAYMENT
    assert len(session.schedule) == 4

    settlement.error = None
    receipt = await installment_workflow.submit(settlement, "acct_1")
    assert receipt.order_id == 5001


async def test_blocked_submission_makes_no_call(installment_workflow: CheckoutWorkflow, settlement):
    installment_workflow.set_tendered(Decimal("10.00"))

    with pytest.raises(SubmissionBlockedError):
        await installment_workflow.submit(settlement, "acct_1")
    with pytest.raises(MissingAccountContextError):
        await installment_workflow.submit(settlement, None)

    assert settlement.requests == []
    assert installment_workflow.session.submission_status is SubmissionStatus.IDLE


def test_in_flight_session_refuses_changes(installment_workflow: CheckoutWorkflow):
    request = installment_workflow.begin_submission("acct_1")

    assert installment_workflow.in_flight
    with pytest.raises(SubmissionInFlightError):
        installment_workflow.begin_submission("acct_1")
    with pytest.raises(SubmissionInFlightError):
        installment_workflow.set_tendered(Decimal("100.00"))
    with pytest.raises(SubmissionInFlightError):
        installment_workflow.back()

    installment_workflow.fail_submission("timeout")
    assert not installment_workflow.in_flight
    assert request.payment.tendered == Decimal("50.00")


def test_submission_only_from_payment_step():
    workflow = CheckoutWorkflow()
    workflow.select_customer("cust_1")

    with pytest.raises(StepGuardError):
        workflow.begin_submission("acct_1")


def test_session_survives_serialization(installment_workflow: CheckoutWorkflow):
    installment_workflow.set_tendered(Decimal("60.00"))
    restored = CheckoutWorkflow(CheckoutSession.from_dict(installment_workflow.session.to_dict()))

    assert restored.session == installment_workflow.session
    assert restored.plan == installment_workflow.plan


def test_down_payment_never_charges_more_than_the_cart(installment_workflow: CheckoutWorkflow):
    workflow = installment_workflow
    workflow.back()
    workflow.set_down_payment(Decimal("300.00"))

    assert workflow.payment.amount_due_now == Decimal("250.00")
    assert workflow.plan.down_payment == Decimal("250.00")

    # Shrinking the cart keeps the cap in step
    workflow.go_to(CheckoutStep.SELECT_CART)
    workflow.remove_product("sku_tv")
    assert workflow.payment.amount_due_now == Decimal("50.00")
    assert workflow.plan.financed_principal == Decimal("0.00")


def test_nothing_financed_refuses_schedule_generation(installment_workflow: CheckoutWorkflow):
    workflow = installment_workflow
    workflow.back()
    workflow.set_down_payment(Decimal("250.00"))

    with pytest.raises(InvalidPlanInputError):
        workflow.generate_schedule(date(2024, 1, 31), MONTHLY, 3)

    workflow.replace_schedule([])
    assert workflow.next() is CheckoutStep.SUBMIT_PAYMENT
