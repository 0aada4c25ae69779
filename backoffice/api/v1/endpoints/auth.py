"""
Authentication endpoints.
Login and current profile.
"""

from fastapi import APIRouter

from backoffice.api.deps import DbSession, CurrentUser
from backoffice.schemas.auth import LoginRequest, Token
from backoffice.schemas.user import UserResponse
from backoffice.services.auth import AuthService


router = APIRouter()


@router.post(
    "/login",
    response_model=Token,
    summary="Login",
    description="Log in with email and password",
)
async def login(
    data: LoginRequest,
    db: DbSession,
) -> Token:
    """Log in and obtain an access token."""
    service = AuthService(db)
    _, access_token = await service.login(data)
    return Token(access_token=access_token)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current profile",
    description="Get the logged-in user's information",
)
async def get_current_user(
    current_user: CurrentUser,
) -> UserResponse:
    """Get the logged-in user's profile."""
    return UserResponse.model_validate(current_user)
