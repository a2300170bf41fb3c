"""FastAPI dependencies for authentication."""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.crud.user import session_crud
from app.models.user import User

# HTTP Bearer token scheme. auto_error=False so a missing header becomes our
# own 401 instead of Starlette's 403.
security = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Raw bearer token from the Authorization header, if any."""
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials


async def get_current_user(
    token: Optional[str] = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from an opaque session token.

    Args:
        token: Bearer token
        db: Database session

    Returns:
        Current user

    Raises:
        HTTPException: If the token is missing, unknown or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await session_crud.get_user_by_token(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user
