"""
User service.
Handles user provisioning and administration.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from fastapi import HTTPException, status

from backoffice.models import Invoice, Payment, Shop, User
from backoffice.schemas.user import UserCreate, UserUpdate
from backoffice.core.security import get_password_hash, verify_password


logger = logging.getLogger(__name__)


class UserService:
    """Service for user operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: UserCreate) -> User:
        """
        Provision a new user account.

        Raises:
            HTTPException: If email already exists
        """
        result = await self.db.execute(
            select(User).where(User.email == data.email)
        )
        if result.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="An account with this email already exists",
            )

        user = User(
            email=data.email,
            hashed_password=get_password_hash(data.password),
            full_name=data.full_name,
            role=data.role,
        )

        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)

        logger.info(f"User {user.email} provisioned as {user.role.value}")
        return user

    async def get_by_id(self, user_id: int) -> User | None:
        """Get user by ID."""
        return await self.db.get(User, user_id)

    async def get_or_404(self, user_id: int) -> User:
        user = await self.get_by_id(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    async def list(self, skip: int = 0, limit: int = 50) -> tuple[list[User], int]:
        total_result = await self.db.execute(select(func.count(User.id)))
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(User).order_by(User.full_name).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def update(self, user: User, data: UserUpdate) -> User:
        """
        Update a user's name, role or active flag.

        Args:
            user: User to update
            data: Update data

        Returns:
            Updated user
        """
        update_data = data.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(user, field, value)

        await self.db.flush()
        await self.db.refresh(user)

        return user

    async def delete(self, user: User, current_user: User) -> None:
        """
        Delete a user account.

        Users who authored shops, invoices or payments are kept for the
        record and must be deactivated instead.
        """
        if user.id == current_user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot delete your own account",
            )

        for model in (Invoice, Payment, Shop):
            result = await self.db.execute(
                select(func.count(model.id)).where(model.created_by == user.id)
            )
            if result.scalar():
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="This user has recorded activity; deactivate the account instead",
                )

        await self.db.delete(user)
        await self.db.flush()
        logger.info(f"User {user.email} deleted")

    async def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
    ) -> User:
        """
        Change user password.

        Raises:
            HTTPException: If current password is incorrect
        """
        if not verify_password(current_password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect",
            )

        user.hashed_password = get_password_hash(new_password)

        await self.db.flush()
        await self.db.refresh(user)

        return user
