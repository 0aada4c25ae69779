"""
Authentication schemas.
"""

from pydantic import EmailStr, Field

from backoffice.schemas.base import BaseSchema


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=6)


class Token(BaseSchema):
    """Access token response."""

    access_token: str
    token_type: str = "bearer"
