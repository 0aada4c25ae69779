"""
Payment model for tracking invoice payments.
Payments are append-only: created once, never updated or deleted.
"""

from typing import Optional
from decimal import Decimal
from datetime import date
from enum import Enum
from sqlalchemy import String, Text, ForeignKey, Integer, Date, CheckConstraint, Enum as SQLEnum, select, func
from sqlalchemy.orm import Mapped, mapped_column, relationship, column_property

from backoffice.core.database import Base
from backoffice.models.base import CreatedAtMixin, money_column
from backoffice.models.invoice import Invoice


class PaymentMethod(str, Enum):
    """Payment method enumeration."""
    CASH = "cash"
    CHECK = "check"


class Payment(Base, CreatedAtMixin):
    """
    Payment model.

    Attributes:
        invoice_id: Foreign key to the invoice
        amount: Strictly positive amount
        payment_method: cash or check
        check_number: Present only for checks
        notes: Additional notes about the payment
        payment_date: Date the money was received
        created_by: User who recorded the payment
    """

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    invoice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = money_column()
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod),
        default=PaymentMethod.CASH,
        nullable=False,
    )
    check_number: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    payment_date: Mapped[date] = mapped_column(
        Date,
        default=date.today,
        nullable=False,
    )
    created_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    invoice: Mapped["Invoice"] = relationship("Invoice", lazy="raise")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, method='{self.payment_method}')>"


# Sum of an invoice's payments, loaded with the invoice row.
Invoice.paid_amount = column_property(
    select(func.coalesce(func.sum(Payment.amount), 0))
    .where(Payment.invoice_id == Invoice.id)
    .correlate_except(Payment)
    .scalar_subquery(),
)
