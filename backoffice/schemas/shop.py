"""
Shop schemas for request/response validation.
"""

from decimal import Decimal
from pydantic import EmailStr, Field

from backoffice.schemas.base import BaseSchema, TimestampSchema


class ShopBase(BaseSchema):
    """Base shop schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255)
    owner_name: str | None = Field(None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    street_address: str | None = Field(None, max_length=255)
    street_address_line_2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    zip_code: str | None = Field(None, max_length=20)


class ShopCreate(ShopBase):
    """Schema for creating a new shop."""
    pass


class ShopUpdate(BaseSchema):
    """Schema for updating a shop."""

    name: str | None = Field(None, min_length=1, max_length=255)
    owner_name: str | None = Field(None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    street_address: str | None = Field(None, max_length=255)
    street_address_line_2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    zip_code: str | None = Field(None, max_length=20)


class ShopResponse(ShopBase, TimestampSchema):
    """Shop response schema."""

    id: int
    created_by: int
    location: str | None = None


class ShopListResponse(BaseSchema):
    """Paginated shop list response."""

    items: list[ShopResponse]
    total: int
    page: int
    per_page: int
    pages: int


class ShopBalance(BaseSchema):
    """Outstanding balance of one shop."""

    shop_id: int
    shop_name: str
    location: str | None = None
    invoice_count: int
    total_amount: Decimal
    total_paid: Decimal
    total_pending: Decimal
    pending_invoice_count: int
