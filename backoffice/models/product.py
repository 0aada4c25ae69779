"""
Product model for the catalog.
Products carry a price and a stock level decremented by invoicing.
"""

from typing import Optional
from decimal import Decimal
from sqlalchemy import String, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.models.base import BaseModel, money_column


class Product(BaseModel):
    """
    Product model.

    Attributes:
        name: Product name
        category: Top-level category
        subcategory: Optional second-level category
        sub_subcategory: Optional third-level category
        price: Unit price
        stock_quantity: Current stock level (may go negative when oversold)
        low_stock_threshold: Alert when stock falls to this level
        image_url: Optional picture
        is_active: Whether the product can be invoiced
    """

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
    )
    category: Mapped[str] = mapped_column(
        String(100),
        default="General",
        index=True,
        nullable=False,
    )
    subcategory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sub_subcategory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    price: Mapped[Decimal] = money_column(default=Decimal("0.00"))

    stock_quantity: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    low_stock_threshold: Mapped[int] = mapped_column(
        Integer,
        default=10,
        nullable=False,
    )
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    @property
    def is_low_stock(self) -> bool:
        """Check if stock is at or below the alert threshold."""
        return self.stock_quantity <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', price={self.price})>"
