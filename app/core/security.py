"""
Password hashing and JWT access tokens
"""
import logging
import uuid
from datetime import timedelta, datetime
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify plain password against hashed password"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def create_user_token(user_id: uuid.UUID) -> str:
    """Issue the bearer token for a signed-in user (subject = user id)."""
    return create_access_token({"sub": str(user_id)})


def decode_access_token(token: str) -> Optional[uuid.UUID]:
    """
    Decode a bearer token and return the user id it carries.

    Returns None when the token is malformed, expired, signed with another
    key, or has no usable subject.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"[auth] JWT decode error: {e}")
        return None

    subject = payload.get("sub")
    if subject is None:
        logger.warning("[auth] Token missing 'sub' field")
        return None
    try:
        return uuid.UUID(subject)
    except (TypeError, ValueError):
        logger.warning(f"[auth] Token subject is not a user id: {subject!r}")
        return None
