"""Password hashing and opaque session token helpers."""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional

from passlib.context import CryptContext

from app.config import settings
from app.utils.datetime_utils import utc_now

# Password hashing context using Argon2
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2.

    Args:
        password: Plain text password

    Returns:
        Hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def generate_session_token(length: Optional[int] = None) -> str:
    """Generate a random URL-safe bearer token."""
    return secrets.token_urlsafe(length or settings.SESSION_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 of a bearer token; only the hash is ever persisted."""
    return hashlib.sha256(token.encode()).hexdigest()


def session_expiry(issued_at: Optional[datetime] = None) -> datetime:
    """Expiry timestamp for a session issued at ``issued_at`` (default: now)."""
    return (issued_at or utc_now()) + timedelta(days=settings.SESSION_EXPIRE_DAYS)
