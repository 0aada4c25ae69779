"""
Product schemas for request/response validation.
"""

from decimal import Decimal
from pydantic import Field

from backoffice.schemas.base import BaseSchema, TimestampSchema


class ProductBase(BaseSchema):
    """Base product schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(default="General", max_length=100)
    subcategory: str | None = Field(None, max_length=100)
    sub_subcategory: str | None = Field(None, max_length=100)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    stock_quantity: int = Field(default=0)
    low_stock_threshold: int = Field(default=10, ge=0)
    image_url: str | None = Field(None, max_length=500)


class ProductCreate(ProductBase):
    """Schema for creating a new product."""
    pass


class ProductUpdate(BaseSchema):
    """Schema for updating a product."""

    name: str | None = Field(None, min_length=1, max_length=255)
    category: str | None = Field(None, max_length=100)
    subcategory: str | None = Field(None, max_length=100)
    sub_subcategory: str | None = Field(None, max_length=100)
    price: Decimal | None = Field(None, ge=0, decimal_places=2)
    low_stock_threshold: int | None = Field(None, ge=0)
    image_url: str | None = Field(None, max_length=500)
    is_active: bool | None = None


class ProductResponse(ProductBase, TimestampSchema):
    """Product response schema."""

    id: int
    is_active: bool
    is_low_stock: bool


class ProductListResponse(BaseSchema):
    """Paginated product list response."""

    items: list[ProductResponse]
    total: int
    page: int
    per_page: int
    pages: int


class StockUpdateRequest(BaseSchema):
    """Schema for adjusting product stock."""

    quantity: int = Field(..., description="Quantity to add (positive) or remove (negative)")
    reason: str | None = Field(None, max_length=255, description="Reason for stock adjustment")
