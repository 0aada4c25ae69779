"""
Base schema configuration and common schemas.
"""

from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class TimestampSchema(BaseSchema):
    """Schema with timestamp fields."""

    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseSchema):
    """Simple message response."""

    message: str
    success: bool = True


def page_count(total: int, per_page: int) -> int:
    """Number of pages needed for ``total`` rows."""
    return (total + per_page - 1) // per_page if per_page > 0 else 0


class BulkImportRequest(BaseSchema):
    """Rows of an imported spreadsheet, one object per row keyed by field name."""

    rows: list[dict[str, Any]] = Field(..., min_length=1, max_length=1000)


class BulkImportResult(BaseSchema):
    """Outcome of a bulk import."""

    total: int
    created: int
    failed: int
    skipped: int = 0
    errors: list[str] = []
