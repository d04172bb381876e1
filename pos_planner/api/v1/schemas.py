"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from pos_planner.config import settings
from pos_planner.domain.models import Frequency, SaleStructure


class InstallmentSchema(BaseModel):
    """Single installment in a schedule"""

    due_date: date
    amount: Decimal = Field(..., ge=0)


class ScheduleOptions(BaseModel):
    """Recurrence parameters for schedule generation"""

    start_date: Optional[date] = Field(None, description="First due date (default: today)")
    frequency: Frequency = Frequency(settings.default_frequency)
    interval_days: Optional[int] = Field(settings.default_interval_days, description="Days between payments for every_n_days")
    count: int = Field(settings.default_installment_count, description="Number of installments; values below 1 count as 1")


class SchedulePreviewRequest(ScheduleOptions):
    """Request body for POST /v1/schedule/preview"""

    total: Decimal = Field(..., ge=0, description="Amount the schedule must cover")


class SchedulePreviewResponse(BaseModel):
    """Response for POST /v1/schedule/preview"""

    total: Decimal
    installments: List[InstallmentSchema]


class PlanQuoteRequest(BaseModel):
    """Request body for POST /v1/plan/quote"""

    cart_total: Decimal = Field(..., ge=0)
    sale_structure: SaleStructure
    down_payment: Decimal = Field(Decimal("0"), ge=0)
    interest_rate_percent: Decimal = Field(Decimal("0"), ge=0)


class PlanQuoteResponse(BaseModel):
    """Financed principal and interest for a sale structure"""

    sale_structure: SaleStructure
    down_payment: Decimal
    financed_principal: Decimal
    interest_rate_percent: Decimal
    interest_amount: Decimal
    schedule_due: Decimal


class CustomerRequest(BaseModel):
    """Request body for PUT /v1/checkout/{id}/customer"""

    customer_ref: str = Field(..., min_length=1, description="Customer identifier")


class CartItemRequest(BaseModel):
    """Request body for POST /v1/checkout/{id}/cart"""

    product_ref: str = Field(..., min_length=1)
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    name: str = ""


class QuantityRequest(BaseModel):
    """Request body for PATCH /v1/checkout/{id}/cart/{product_ref}"""

    quantity: int


class PlanRequest(BaseModel):
    """Request body for PUT /v1/checkout/{id}/plan"""

    sale_structure: SaleStructure
    down_payment: Optional[Decimal] = Field(None, ge=0)
    interest_rate_percent: Optional[Decimal] = Field(None, ge=0)


class ScheduleReplaceRequest(BaseModel):
    """Request body for PUT /v1/checkout/{id}/schedule"""

    installments: List[InstallmentSchema] = Field(..., min_length=1)


class PaymentRequest(BaseModel):
    """Request body for PUT /v1/checkout/{id}/payment"""

    tendered: Optional[Decimal] = Field(None, ge=0)
    method: Optional[str] = None
    deduction: Optional[Decimal] = Field(None, ge=0)


class CartLineSchema(BaseModel):
    """Cart line with its computed total"""

    product_ref: str
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class PlanSchema(PlanQuoteResponse):
    """Current payment plan, including the schedule and its reconciliation"""

    schedule: List[InstallmentSchema]
    schedule_total: Decimal
    reconciled: bool


class PaymentSchema(BaseModel):
    """Amount due now and the cash handed over"""

    amount_due_now: Decimal
    tendered: Decimal
    method: str
    change: Decimal
    deduction: Optional[Decimal] = None


class CheckoutResponse(BaseModel):
    """Snapshot of a checkout session"""

    session_id: str
    step: str
    step_index: int
    customer_ref: Optional[str] = None
    cart: List[CartLineSchema]
    cart_total: Decimal
    plan: PlanSchema
    payment: PaymentSchema
    can_advance: bool
    guard_message: Optional[str] = None
    submission_status: str
    submission_error: Optional[str] = None


class ReceiptResponse(BaseModel):
    """Response for POST /v1/checkout/{id}/submit and GET /v1/receipts/{order_id}"""

    order_id: int
    status: str
    account_id: str
    customer_ref: str
    sale_structure: SaleStructure
    sale_date: str
    items: List[CartLineSchema]
    cart_total: Decimal
    down_payment: Decimal
    financed_principal: Decimal
    interest_rate_percent: Decimal
    interest_amount: Decimal
    grand_total: Decimal
    schedule_total: Decimal
    final_total: Decimal
    payment: PaymentSchema
    schedule: List[InstallmentSchema]


class ReceiptSummary(BaseModel):
    """Single receipt in an account's history"""

    order_id: int
    status: str
    customer_ref: str
    sale_structure: SaleStructure
    created_at: str


class ReceiptHistoryResponse(BaseModel):
    """Response for GET /v1/receipts"""

    account_id: str
    receipts: List[ReceiptSummary]


class CustomerSchema(BaseModel):
    """Customer from the directory"""

    customer_id: str
    name: str
    credit_limit: Optional[Decimal] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class ProductSchema(BaseModel):
    """Product from the catalog"""

    product_id: str
    name: str
    price: Decimal
