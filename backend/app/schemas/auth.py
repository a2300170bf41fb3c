"""Authentication Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.user import User


class RegisterRequest(BaseModel):
    """Schema for user registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, description="Password must be at least 8 characters")
    name: Optional[str] = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


class LoginRequest(BaseModel):
    """Schema for user login."""

    email: EmailStr
    password: str


class SessionResponse(BaseModel):
    """Issued session: the raw bearer token is returned exactly once."""

    user: User
    token: str
    token_type: str = "bearer"
    expires_at: datetime


class ValidateSessionResponse(BaseModel):
    """Schema for session validation response."""

    user: User
