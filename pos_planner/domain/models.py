"""Domain models - pure Python dataclasses representing checkout entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple

from pos_planner.domain.money import ZERO, sum_cents, to_cents


class SaleStructure(str, Enum):
    """Payment arrangement chosen for a sale"""

    FULL_PAYMENT = "full_payment"
    INSTALLMENT_WITH_DOWN = "installment_with_down"
    PURE_INSTALLMENT = "pure_installment"

    @property
    def is_installment(self) -> bool:
        return self is not SaleStructure.FULL_PAYMENT


class Frequency(str, Enum):
    """Recurrence rule kinds for installment due dates"""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    EVERY_N_DAYS = "every_n_days"


class CheckoutStep(IntEnum):
    """Checkout wizard steps, in order"""

    SELECT_CUSTOMER = 0
    SELECT_CART = 1
    CONFIGURE_PLAN = 2
    SUBMIT_PAYMENT = 3


class SubmissionStatus(str, Enum):
    """Lifecycle of the single settlement request a session may have outstanding"""

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RecurrenceRule:
    """How installment due dates advance from the start date"""

    kind: Frequency
    interval_days: Optional[int] = None


@dataclass(frozen=True)
class CartLine:
    """Single product line in the cart"""

    product_ref: str
    unit_price: Decimal
    quantity: int
    name: str = ""

    @property
    def line_total(self) -> Decimal:
        return to_cents(self.unit_price * self.quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_ref": self.product_ref,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartLine":
        return cls(
            product_ref=data["product_ref"],
            unit_price=to_cents(data["unit_price"]),
            quantity=int(data["quantity"]),
            name=data.get("name", ""),
        )


@dataclass(frozen=True)
class InstallmentLine:
    """Single payment in an installment schedule"""

    due_date: date
    amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"due_date": self.due_date.isoformat(), "amount": str(self.amount)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstallmentLine":
        return cls(
            due_date=date.fromisoformat(data["due_date"]),
            amount=to_cents(data["amount"]),
        )


@dataclass(frozen=True)
class PaymentPlan:
    """Financed principal, interest and schedule derived for a sale"""

    structure: SaleStructure
    down_payment: Decimal
    interest_rate_percent: Decimal
    financed_principal: Decimal
    interest_amount: Decimal
    schedule: Tuple[InstallmentLine, ...] = ()

    @property
    def schedule_due(self) -> Decimal:
        """Amount the schedule must sum to: principal plus interest"""
        return to_cents(self.financed_principal + self.interest_amount)

    @property
    def schedule_total(self) -> Decimal:
        return sum_cents(line.amount for line in self.schedule)

    @property
    def is_reconciled(self) -> bool:
        if not self.structure.is_installment:
            return True
        return self.schedule_total == self.schedule_due


@dataclass(frozen=True)
class PaymentSubmission:
    """Money handed over at the counter for this sale"""

    amount_due_now: Decimal
    tendered: Decimal
    method: str
    deduction: Optional[Decimal] = None

    @property
    def change(self) -> Decimal:
        return max(ZERO, to_cents(self.tendered - self.amount_due_now))

    @property
    def is_sufficient(self) -> bool:
        return self.amount_due_now <= ZERO or self.tendered >= self.amount_due_now


@dataclass
class CheckoutSession:
    """
    In-progress checkout owned by a single workflow.

    Tendered is None until the cashier overrides it, in which case it tracks
    the amount due now.
    """

    step: CheckoutStep = CheckoutStep.SELECT_CUSTOMER
    customer_ref: Optional[str] = None
    cart: List[CartLine] = field(default_factory=list)
    structure: SaleStructure = SaleStructure.FULL_PAYMENT
    down_payment: Decimal = ZERO
    interest_rate_percent: Decimal = ZERO
    schedule: List[InstallmentLine] = field(default_factory=list)
    tendered: Optional[Decimal] = None
    payment_method: str = "cash"
    deduction: Decimal = ZERO
    submission_status: SubmissionStatus = SubmissionStatus.IDLE
    submission_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": int(self.step),
            "customer_ref": self.customer_ref,
            "cart": [line.to_dict() for line in self.cart],
            "structure": self.structure.value,
            "down_payment": str(self.down_payment),
            "interest_rate_percent": str(self.interest_rate_percent),
            "schedule": [line.to_dict() for line in self.schedule],
            "tendered": str(self.tendered) if self.tendered is not None else None,
            "payment_method": self.payment_method,
            "deduction": str(self.deduction),
            "submission_status": self.submission_status.value,
            "submission_error": self.submission_error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckoutSession":
        tendered = data.get("tendered")
        return cls(
            step=CheckoutStep(data.get("step", 0)),
            customer_ref=data.get("customer_ref"),
            cart=[CartLine.from_dict(line) for line in data.get("cart", [])],
            structure=SaleStructure(data.get("structure", SaleStructure.FULL_PAYMENT.value)),
            down_payment=to_cents(data.get("down_payment", "0")),
            interest_rate_percent=Decimal(data.get("interest_rate_percent", "0")),
            schedule=[InstallmentLine.from_dict(line) for line in data.get("schedule", [])],
            tendered=to_cents(tendered) if tendered is not None else None,
            payment_method=data.get("payment_method", "cash"),
            deduction=to_cents(data.get("deduction", "0")),
            submission_status=SubmissionStatus(data.get("submission_status", SubmissionStatus.IDLE.value)),
            submission_error=data.get("submission_error"),
        )


@dataclass(frozen=True)
class SettlementRequest:
    """Frozen sale payload handed to the Settlement Service"""

    account_id: str
    customer_ref: str
    structure: SaleStructure
    items: Tuple[CartLine, ...]
    payment: PaymentSubmission
    plan: PaymentPlan
    sale_date: datetime
    installment_plan_id: Optional[int] = None

    @property
    def cart_total(self) -> Decimal:
        return sum_cents(line.line_total for line in self.items)

    @property
    def total_with_interest(self) -> Optional[Decimal]:
        if not self.structure.is_installment:
            return None
        return self.plan.schedule_due

    @property
    def total_financed(self) -> Optional[Decimal]:
        """Schedule total when one exists, otherwise principal plus interest"""
        if not self.structure.is_installment:
            return None
        scheduled = self.plan.schedule_total
        return scheduled if scheduled > ZERO else self.plan.schedule_due


@dataclass(frozen=True)
class SettlementResult:
    """Settlement Service acknowledgement"""

    order_id: int
    status: str


@dataclass(frozen=True)
class Receipt:
    """Snapshot of a settled sale for display and reprint"""

    order_id: int
    status: str
    account_id: str
    customer_ref: str
    structure: SaleStructure
    items: Tuple[CartLine, ...]
    payment: PaymentSubmission
    plan: PaymentPlan
    sale_date: datetime

    @property
    def cart_total(self) -> Decimal:
        return sum_cents(line.line_total for line in self.items)

    @property
    def grand_total(self) -> Decimal:
        return self.plan.schedule_due

    @property
    def final_total(self) -> Decimal:
        """Down payment plus everything on the schedule"""
        return to_cents(self.plan.down_payment + self.plan.schedule_total)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "status": self.status,
            "account_id": self.account_id,
            "customer_ref": self.customer_ref,
            "sale_structure": self.structure.value,
            "sale_date": self.sale_date.isoformat(),
            "items": [
                {**line.to_dict(), "line_total": str(line.line_total)}
                for line in self.items
            ],
            "cart_total": str(self.cart_total),
            "down_payment": str(self.plan.down_payment),
            "financed_principal": str(self.plan.financed_principal),
            "interest_rate_percent": str(self.plan.interest_rate_percent),
            "interest_amount": str(self.plan.interest_amount),
            "grand_total": str(self.grand_total),
            "schedule_total": str(self.plan.schedule_total),
            "final_total": str(self.final_total),
            "payment": {
                "amount_due_now": str(self.payment.amount_due_now),
                "tendered": str(self.payment.tendered),
                "method": self.payment.method,
                "change": str(self.payment.change),
                "deduction": str(self.payment.deduction) if self.payment.deduction is not None else None,
            },
            "schedule": [line.to_dict() for line in self.plan.schedule],
        }

    @classmethod
    def from_settlement(cls, request: SettlementRequest, result: SettlementResult) -> "Receipt":
        return cls(
            order_id=result.order_id,
            status=result.status,
            account_id=request.account_id,
            customer_ref=request.customer_ref,
            structure=request.structure,
            items=request.items,
            payment=request.payment,
            plan=request.plan,
            sale_date=request.sale_date,
        )


@dataclass
class CustomerRecord:
    """Customer entry from the directory service"""

    customer_id: str
    name: str
    credit_limit: Optional[Decimal] = None
    phone: Optional[str] = None
    email: Optional[str] = None


@dataclass
class ProductRecord:
    """Catalog entry from the product service"""

    product_id: str
    name: str
    price: Decimal
