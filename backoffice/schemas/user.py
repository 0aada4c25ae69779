"""
User schemas for request/response validation.
"""

from pydantic import EmailStr, Field

from backoffice.models.user import UserRole
from backoffice.schemas.base import TimestampSchema, BaseSchema


class UserCreate(BaseSchema):
    """Schema for provisioning a new user (admin only)."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=2, max_length=255)
    role: UserRole = UserRole.SALES


class UserUpdate(BaseSchema):
    """Schema for updating a user (admin only)."""

    full_name: str | None = Field(None, min_length=2, max_length=255)
    role: UserRole | None = None
    is_active: bool | None = None


class PasswordChange(BaseSchema):
    """Schema for changing one's own password."""

    current_password: str
    new_password: str = Field(..., min_length=8)


class UserResponse(TimestampSchema):
    """User response schema (public data)."""

    id: int
    email: EmailStr
    full_name: str
    role: UserRole
    is_active: bool
