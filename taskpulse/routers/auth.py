"""Authentication router for Taskpulse."""
import hashlib
import hmac
import logging
import secrets
from datetime import timedelta

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from taskpulse.config import AUTH_ALGORITHM, AUTH_SECRET, AUTH_TOKEN_DAYS
from taskpulse.db.config import get_session
from taskpulse.models.user import User
from taskpulse.schemas.auth import SignInRequest, SignUpRequest, TokenResponse
from taskpulse.timestamps import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])  # No prefix since main.py adds /auth prefix

_PBKDF2_ITERATIONS = 200_000


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), _PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${_PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        _, iterations, salt, expected = stored.split("$")
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def create_jwt_token(user: User) -> str:
    now = utcnow()
    payload = {
        "sub": user.id,
        "email": user.email,
        "name": user.display_name,
        "exp": now + timedelta(days=AUTH_TOKEN_DAYS),
        "iat": now,
    }
    return jwt.encode(payload, AUTH_SECRET, algorithm=AUTH_ALGORITHM)


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        token=create_jwt_token(user),
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
    )


@router.post("/sign-up", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(request: SignUpRequest, session: Session = Depends(get_session)):
    """Register a user and return a session token."""
    # Check if user already exists
    existing = session.exec(select(User).where(User.email == request.email)).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )

    try:
        user = User(
            email=request.email,
            display_name=request.display_name,
            photo_url=request.photo_url,
            password_hash=hash_password(request.password),
        )
        session.add(user)
        session.commit()
        session.refresh(user)
    except Exception as e:
        session.rollback()
        logger.error(f"Failed to create user {request.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )

    logger.info(f"User {user.id} signed up")
    return _token_response(user)


@router.post("/sign-in", response_model=TokenResponse)
async def sign_in(request: SignInRequest, session: Session = Depends(get_session)):
    """Exchange email and password for a session token."""
    user = session.exec(select(User).where(User.email == request.email)).first()

    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    logger.info(f"User {user.id} signed in")
    return _token_response(user)
