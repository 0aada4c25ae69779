"""
User management endpoints.
Admin provisioning and administration, own password change.
"""

from fastapi import APIRouter, Query, status

from backoffice.api.deps import DbSession, CurrentUser, AdminUser
from backoffice.schemas.user import UserCreate, UserUpdate, UserResponse, PasswordChange
from backoffice.schemas.base import MessageResponse
from backoffice.services.user import UserService


router = APIRouter()


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    description="Provision a user account with a password and role (admin only)",
)
async def create_user(
    data: UserCreate,
    current_user: AdminUser,
    db: DbSession,
) -> UserResponse:
    """Provision a new user."""
    service = UserService(db)
    user = await service.create(data)
    return UserResponse.model_validate(user)


@router.get(
    "",
    response_model=list[UserResponse],
    summary="List users",
    description="List all user accounts (admin only)",
)
async def list_users(
    current_user: AdminUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(50, ge=1, le=100, description="Items per page"),
) -> list[UserResponse]:
    """List all users."""
    service = UserService(db)
    users, _ = await service.list(skip=(page - 1) * per_page, limit=per_page)
    return [UserResponse.model_validate(u) for u in users]


@router.post(
    "/me/change-password",
    response_model=MessageResponse,
    summary="Change password",
    description="Change my password",
)
async def change_password(
    data: PasswordChange,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    """Change current user's password."""
    service = UserService(db)
    await service.change_password(
        current_user,
        data.current_password,
        data.new_password,
    )
    return MessageResponse(message="Password changed successfully")


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update a user",
    description="Change a user's name, role or active flag (admin only)",
)
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: AdminUser,
    db: DbSession,
) -> UserResponse:
    """Update a user."""
    service = UserService(db)
    user = await service.get_or_404(user_id)
    user = await service.update(user, data)
    return UserResponse.model_validate(user)


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    summary="Delete a user",
    description="Delete a user without recorded activity (admin only)",
)
async def delete_user(
    user_id: int,
    current_user: AdminUser,
    db: DbSession,
) -> MessageResponse:
    """Delete a user."""
    service = UserService(db)
    user = await service.get_or_404(user_id)
    await service.delete(user, current_user)
    return MessageResponse(message="User deleted successfully")
