"""
Payment schemas for request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from pydantic import Field, model_validator

from backoffice.models.invoice import PaymentStatus
from backoffice.models.payment import PaymentMethod
from backoffice.schemas.base import BaseSchema


class PaymentBase(BaseSchema):
    """Base payment schema."""

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_method: PaymentMethod = PaymentMethod.CASH
    check_number: str | None = Field(None, max_length=100)
    notes: str | None = None
    payment_date: date | None = None

    @model_validator(mode="after")
    def drop_check_number_for_cash(self):
        # A check number only makes sense for checks
        if self.payment_method != PaymentMethod.CHECK:
            self.check_number = None
        return self


class PaymentCreate(PaymentBase):
    """Schema for recording a payment against one invoice."""

    invoice_id: int


class DistributePaymentRequest(PaymentBase):
    """Schema for distributing one payment across a shop's invoices."""

    shop_id: int


class PaymentResponse(BaseSchema):
    """Payment response schema."""

    id: int
    invoice_id: int
    amount: Decimal
    payment_method: PaymentMethod
    check_number: str | None
    notes: str | None
    payment_date: date
    created_by: int
    created_at: datetime


class PaymentResult(BaseSchema):
    """A recorded payment and the invoice state it produced."""

    payment: PaymentResponse
    invoice_id: int
    invoice_number: str
    payment_status: PaymentStatus
    remaining_balance: Decimal


class DistributionResponse(BaseSchema):
    """Result of a payment distribution."""

    shop_id: int
    amount: Decimal
    total_pending_before: Decimal
    allocations: list[PaymentResult]


class PaymentListResponse(BaseSchema):
    """Paginated payment list response."""

    items: list[PaymentResponse]
    total: int
    page: int
    per_page: int
    pages: int
