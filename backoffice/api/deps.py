"""
API Dependencies.
Common dependencies for authentication, database sessions, etc.
"""

import logging
from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.core.security import decode_token
from backoffice.models.user import User


logger = logging.getLogger(__name__)

# Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the current user from the JWT bearer token.

    Raises:
        HTTPException: If the token is invalid or the user does not exist
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        logger.warning("Access attempt without token")
        raise credentials_exception

    token_data = decode_token(credentials.credentials)

    if token_data is None or token_data.user_id is None:
        logger.warning("Invalid or expired token")
        raise credentials_exception

    user = await db.get(User, token_data.user_id)

    if user is None:
        logger.warning(f"User {token_data.user_id} not found")
        raise credentials_exception

    logger.debug(f"Authenticated user: {user.email}")
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Current user, provided the account is active.

    Raises:
        HTTPException: If the account is disabled
    """
    if not current_user.is_active:
        logger.warning(f"Disabled account: {current_user.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account disabled",
        )
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Current user, provided they hold the admin role."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def scope_for(user: User) -> int | None:
    """Creator filter for a user: None for admins, their own id otherwise."""
    return None if user.is_admin else user.id


# Type aliases for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_active_user)]
AdminUser = Annotated[User, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
