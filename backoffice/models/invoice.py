"""
Invoice, InvoiceItem and InvoiceSequence models.

An invoice's payment status is derived from its payments and persisted for
query efficiency only; see ``backoffice.services.allocation.derive_status``.
"""

from typing import Optional, List, TYPE_CHECKING
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Text, ForeignKey, Integer, BigInteger, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import Base
from backoffice.models.base import BaseModel, money_column

if TYPE_CHECKING:
    from backoffice.models.shop import Shop


class PaymentStatus(str, Enum):
    """Invoice payment status enumeration."""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class Invoice(BaseModel):
    """
    Invoice model.

    Attributes:
        shop_id: Owning shop
        invoice_number: Unique sequential number, assigned at creation
        total_amount: Amount due after discount, fixed at creation
        discount_amount: Discount applied to the items subtotal
        payment_status: Cached result of the status deriver
        created_by: Author of the invoice
        notes: Free text; legacy balances are tagged here

    Payments reference the invoice; the invoice holds no payment collection.
    """

    __tablename__ = "invoices"

    shop_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("shops.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    invoice_number: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        index=True,
        nullable=False,
    )

    total_amount: Mapped[Decimal] = money_column(default=Decimal("0.00"))
    discount_amount: Mapped[Decimal] = money_column(default=Decimal("0.00"))

    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        default=PaymentStatus.UNPAID,
        index=True,
        nullable=False,
    )

    created_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Relationships
    shop: Mapped["Shop"] = relationship("Shop", lazy="joined")
    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItem.id",
    )

    # paid_amount is attached in backoffice.models.payment

    @property
    def remaining_balance(self) -> Decimal:
        """Total minus everything paid so far."""
        return self.total_amount - Decimal(self.paid_amount or 0)

    @property
    def shop_name(self) -> Optional[str]:
        return self.shop.name if self.shop else None

    @property
    def subtotal_amount(self) -> Decimal:
        """Items subtotal before discount."""
        return self.total_amount + self.discount_amount

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', total={self.total_amount})>"


class InvoiceItem(BaseModel):
    """
    Invoice line item model.

    The product name and unit price are copied at invoicing time so later
    catalog edits do not alter issued invoices.
    """

    __tablename__ = "invoice_items"

    invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    product_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )
    unit_price: Mapped[Decimal] = money_column()
    subtotal: Mapped[Decimal] = money_column()

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="items",
    )

    def __repr__(self) -> str:
        return f"<InvoiceItem(id={self.id}, product='{self.product_name}', subtotal={self.subtotal})>"


class InvoiceSequence(Base):
    """
    Named counter row backing invoice numbering.
    Locked with SELECT ... FOR UPDATE while a number is drawn.
    """

    __tablename__ = "invoice_sequences"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    current_value: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
    )
