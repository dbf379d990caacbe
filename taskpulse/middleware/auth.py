"""JWT authentication dependencies for FastAPI."""
from typing import Optional

import jwt
from fastapi import HTTPException, Request, status
from pydantic import BaseModel

from taskpulse.config import AUTH_ALGORITHM, AUTH_SECRET


class CurrentUser(BaseModel):
    """User information extracted from JWT."""
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> CurrentUser:
    """
    Validate a JWT and extract the user it was issued to.

    Raises:
        HTTPException: If token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, AUTH_SECRET, algorithms=[AUTH_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: missing user ID")

    return CurrentUser(
        user_id=user_id,
        email=payload.get("email"),
        display_name=payload.get("name"),
    )


async def get_current_user(request: Request) -> CurrentUser:
    """
    Validate JWT token from Authorization header and extract user information.

    Args:
        request: FastAPI request object to extract Authorization header

    Returns:
        CurrentUser with user_id, email and display name from token

    Raises:
        HTTPException: If token is missing, invalid or expired
    """
    # Skip authentication for OPTIONS requests (preflight CORS requests)
    if request.method == "OPTIONS":
        return CurrentUser(user_id="", email="")

    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise _unauthorized("Missing or invalid Authorization header")

    return decode_token(auth_header[7:])  # Remove "Bearer " prefix


def verify_user_access(user_id: str, current_user: CurrentUser) -> str:
    """
    Verify that the authenticated user matches the requested user ID.

    Raises:
        HTTPException: If user ID doesn't match the token subject
    """
    if user_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this user's resources"
        )
    return user_id
