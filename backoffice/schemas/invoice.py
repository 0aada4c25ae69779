"""
Invoice schemas for request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from pydantic import EmailStr, Field

from backoffice.models.invoice import PaymentStatus
from backoffice.schemas.base import BaseSchema, TimestampSchema


class InvoiceItemCreate(BaseSchema):
    """Schema for one invoice line."""

    product_id: int
    quantity: int = Field(default=1, gt=0)
    unit_price: Decimal | None = Field(
        None, ge=0, decimal_places=2, description="Defaults to the catalog price"
    )


class InvoiceItemResponse(BaseSchema):
    """Invoice item response schema."""

    id: int
    product_id: int | None
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class InvoiceCreate(BaseSchema):
    """
    Schema for creating an invoice.

    Cash and check amounts received at invoicing time are recorded as
    payments; the payment status is derived from them.
    """

    shop_id: int
    items: list[InvoiceItemCreate] = Field(default_factory=list)
    discount_amount: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    cash_amount: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    check_amount: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    check_number: str | None = Field(None, max_length=100)
    notes: str | None = None
    send_email: bool = False
    recipient_email: EmailStr | None = Field(
        None, description="Overrides the shop email when sending"
    )


class LegacyBalanceCreate(BaseSchema):
    """Schema for recording a shop's opening balance from previous records."""

    shop_id: int
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    notes: str | None = None


class InvoiceNotesUpdate(BaseSchema):
    """Only notes may change after creation."""

    notes: str | None = None


class InvoiceShop(BaseSchema):
    """Shop fields embedded in invoice responses."""

    id: int
    name: str
    email: str | None = None
    location: str | None = None


class InvoiceResponse(TimestampSchema):
    """Invoice response schema."""

    id: int
    invoice_number: str
    shop_id: int
    shop: InvoiceShop | None = None
    total_amount: Decimal
    discount_amount: Decimal
    subtotal_amount: Decimal
    payment_status: PaymentStatus
    paid_amount: Decimal
    remaining_balance: Decimal
    notes: str | None
    created_by: int
    items: list[InvoiceItemResponse]


class InvoiceCreateResponse(BaseSchema):
    """Created invoice plus any non-fatal warnings (email dispatch)."""

    invoice: InvoiceResponse
    email_sent: bool = False
    warnings: list[str] = Field(default_factory=list)


class InvoiceListResponse(BaseSchema):
    """Paginated invoice list response."""

    items: list[InvoiceResponse]
    total: int
    page: int
    per_page: int
    pages: int


class InvoiceFilters(BaseSchema):
    """Filters accepted by invoice listing."""

    shop_id: int | None = None
    payment_status: PaymentStatus | None = None
    created_by: int | None = None
    from_date: date | None = None
    to_date: date | None = None
    search: str | None = None


class StatusReconciliation(BaseSchema):
    """Outcome of re-deriving every invoice status."""

    checked: int
    corrected: int
    corrected_invoice_ids: list[int]
    checked_at: datetime
