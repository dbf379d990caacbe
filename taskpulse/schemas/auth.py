"""Authentication schemas for Taskpulse."""
from typing import Optional

from pydantic import EmailStr, Field

from taskpulse.schemas.base import CamelModel


class TokenResponse(CamelModel):
    """Response containing JWT token after sign in."""
    token: str
    user_id: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class SignUpRequest(CamelModel):
    """Sign up request body."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = Field(None, max_length=500)


class SignInRequest(CamelModel):
    """Sign in request body."""
    email: EmailStr
    password: str
