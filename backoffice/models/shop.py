"""
Shop model for managing customers.
Shops group invoices; they are the key for distributing a payment.
"""

from typing import Optional
from sqlalchemy import String, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.models.base import BaseModel


class Shop(BaseModel):
    """
    Shop (customer) model.

    Every contact and address field is optional; consumers must tolerate
    missing values.
    """

    __tablename__ = "shops"

    name: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
    )
    owner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Address
    street_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    street_address_line_2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    @property
    def location(self) -> Optional[str]:
        """City and state joined, or None when neither is known."""
        parts = [p for p in (self.city, self.state) if p]
        return ", ".join(parts) if parts else None

    def __repr__(self) -> str:
        return f"<Shop(id={self.id}, name='{self.name}')>"
