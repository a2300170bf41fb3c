"""CRUD operations for users and sessions."""

from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import generate_session_token, hash_password, hash_token, session_expiry
from app.models.user import User, UserSession
from app.utils.datetime_utils import utc_now


class UserCRUD:
    """CRUD operations for User model."""

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        """Get user by email."""
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        email: str,
        password: str,
        name: Optional[str] = None,
    ) -> User:
        """Create a new user."""
        user = User(
            email=email.lower(),
            password_hash=hash_password(password),
            name=name,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    @staticmethod
    async def update_last_login(db: AsyncSession, user: User) -> None:
        """Update user's last login timestamp."""
        user.last_login_at = utc_now()
        await db.commit()


class SessionCRUD:
    """CRUD operations for UserSession model."""

    @staticmethod
    async def create(db: AsyncSession, user_id: UUID) -> tuple[str, UserSession]:
        """
        Issue a new session.

        Returns:
            Tuple of (raw bearer token, persisted session). The raw token is not
            stored and cannot be recovered later.
        """
        token = generate_session_token()
        session = UserSession(
            user_id=user_id,
            token_hash=hash_token(token),
            expires_at=session_expiry(),
        )
        db.add(session)
        await db.commit()
        await db.refresh(session)
        return token, session

    @staticmethod
    async def get_user_by_token(db: AsyncSession, token: str) -> Optional[User]:
        """Resolve an unexpired session token to its user."""
        result = await db.execute(
            select(User)
            .join(UserSession, UserSession.user_id == User.id)
            .where(
                UserSession.token_hash == hash_token(token),
                UserSession.expires_at > utc_now(),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_by_token(db: AsyncSession, token: str) -> bool:
        """Delete the session for ``token``. Returns True if one existed."""
        result = await db.execute(
            delete(UserSession).where(UserSession.token_hash == hash_token(token))
        )
        await db.commit()
        return result.rowcount > 0

    @staticmethod
    async def purge_expired(db: AsyncSession) -> int:
        """Remove expired sessions; returns the number deleted."""
        result = await db.execute(delete(UserSession).where(UserSession.expires_at <= utc_now()))
        await db.commit()
        return result.rowcount or 0


# Create singleton instances
user_crud = UserCRUD()
session_crud = SessionCRUD()
