"""Authentication API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import hash_password, verify_password
from app.crud.user import session_crud, user_crud
from app.dependencies import get_bearer_token, get_current_user
from app.models.user import User
from app.schemas.auth import LoginRequest, RegisterRequest, SessionResponse, ValidateSessionResponse
from app.schemas.user import User as UserSchema

logger = logging.getLogger(__name__)

router = APIRouter()

# Verified against when the email is unknown so both failure paths cost one hash check
DUMMY_PASSWORD_HASH = hash_password("pocketbook-dummy-password")


async def create_session_response(db: AsyncSession, user: User) -> SessionResponse:
    """Issue a session for ``user`` and build the response body."""
    user_data = UserSchema.model_validate(user)
    token, session = await session_crud.create(db, user_data.id)
    return SessionResponse(user=user_data, token=token, expires_at=session.expires_at)


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new user.

    Creates the account and logs it in by issuing a session token.
    """
    existing_user = await user_crud.get_by_email(db, data.email)
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = await user_crud.create(db=db, email=data.email, password=data.password, name=data.name)
    logger.info("User registered: %s", user.id)

    return await create_session_response(db, user)


@router.post("/login", response_model=SessionResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Login with email and password."""
    user = await user_crud.get_by_email(db, data.email)
    if not user:
        verify_password(data.password, DUMMY_PASSWORD_HASH)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )

    if not verify_password(data.password, user.password_hash):
        logger.warning("Login failed: bad password for user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )

    await user_crud.update_last_login(db, user)
    return await create_session_response(db, user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: Optional[str] = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
):
    """
    Logout by deleting the session behind the bearer token.

    Succeeds whether or not the token was known.
    """
    if token:
        await session_crud.delete_by_token(db, token)
    return None


@router.get("/validate", response_model=ValidateSessionResponse)
async def validate_session(
    current_user: User = Depends(get_current_user),
):
    """Return the user behind a valid session token."""
    return ValidateSessionResponse(user=UserSchema.model_validate(current_user))
