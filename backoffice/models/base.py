"""
Base model with common fields and utilities.
"""

from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import DateTime, Numeric, func
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def money_column(**kwargs) -> Mapped[Decimal]:
    """Monetary column, two decimal places."""
    kwargs.setdefault("nullable", False)
    return mapped_column(Numeric(precision=12, scale=2), **kwargs)


class CreatedAtMixin:
    """Creation timestamp only, for append-only records."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )


class TimestampMixin(CreatedAtMixin):
    """Creation and last-update timestamps."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class BaseModel(Base, TimestampMixin):
    """
    Abstract base model with ID and timestamps.
    Mutable entities inherit from this.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
