"""
Authentication Service
Handles login with implicit signup, password reset, and profile management
"""
import logging
import random
import secrets
import string
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ImageStorageError, NotificationError, Unauthorized, UpstreamFailure, ValidationFailed,
)
from app.core.security import create_user_token, get_password_hash, verify_password
from app.models.user import User
from app.services.image_service import RawImage

logger = logging.getLogger(__name__)

GENERIC_RESET_MESSAGE = "If we find your account, you will receive an email from us shortly"
PROFILE_FIELDS = ("name", "phone", "company", "address", "about")


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def _random_username(db: Session, length: int = 6) -> str:
    alphabet = string.ascii_lowercase + string.digits
    while True:
        candidate = "".join(random.choices(alphabet, k=length))
        if not get_user_by_username(db, candidate):
            return candidate


def _check_new_password(password: Optional[str], message: str) -> None:
    if not password or len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationFailed(message)


def normalize_email(email: Optional[str]) -> str:
    """
    Validate email format and return the normalized address

    Raises:
        ValidationFailed: email is missing or malformed
    """
    if not email or not email.strip():
        raise ValidationFailed("A valid email is required")
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise ValidationFailed("A valid email is required")


def login_or_signup(db: Session, email: Optional[str], password: Optional[str], notifier) -> Dict[str, Any]:
    """
    Sign in, creating the account on first login

    Args:
        db: Database session
        email: Account email
        password: Plain text password
        notifier: Email collaborator for the welcome message

    Returns:
        {"token", "user"}
    """
    email = normalize_email(email)
    if not password:
        raise ValidationFailed("Password is required")
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password should be at least {settings.MIN_PASSWORD_LENGTH} characters long")

    user = get_user_by_email(db, email)
    if user is None:
        user = User(
            email=email,
            username=_random_username(db),
            hashed_password=get_password_hash(password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"[auth] New account created for {email}")

        try:
            notifier.send_welcome(email)
        except NotificationError as e:
            logger.warning(f"[auth] Welcome email to {email} failed: {e}")
    else:
        if not verify_password(password, user.hashed_password):
            logger.info(f"[auth] Wrong password for {email}")
            raise Unauthorized("Wrong password")
        logger.info(f"[auth] {email} signed in")

    return {"token": create_user_token(user.id), "user": user.to_dict()}


def request_password_reset(db: Session, email: Optional[str], notifier) -> Dict[str, str]:
    """Store a reset token and email the link; unknown emails get the same generic answer"""
    try:
        user = get_user_by_email(db, normalize_email(email))
    except ValidationFailed:
        user = None
    if not user:
        return {"message": GENERIC_RESET_MESSAGE}

    token = secrets.token_urlsafe(24)[:32]
    user.reset_password_token = token
    user.reset_password_expires_at = datetime.utcnow() + timedelta(hours=settings.PASSWORD_RESET_EXPIRE_HOURS)
    db.commit()

    reset_url = f"{settings.CLIENT_URL}/reset-password/{token}"
    try:
        notifier.send_password_reset(user.email, reset_url)
    except NotificationError as e:
        logger.error(f"[auth] Password reset email to {user.email} failed: {e}")
        user.reset_password_token = None
        user.reset_password_expires_at = None
        db.commit()
        raise UpstreamFailure("Something went wrong. Try again.") from e

    logger.info(f"[auth] Password reset requested for {user.email}")
    return {"message": "Password reset link has been sent to your email"}


def reset_password(db: Session, token: Optional[str], new_password: Optional[str]) -> Dict[str, str]:
    _check_new_password(new_password, f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long")

    user = None
    if token:
        user = (
            db.query(User)
            .filter(
                User.reset_password_token == token,
                User.reset_password_expires_at > datetime.utcnow(),
            )
            .first()
        )
    if not user:
        raise ValidationFailed("Invalid or expired reset token. Please request a new password reset")

    user.hashed_password = get_password_hash(new_password)
    user.reset_password_token = None
    user.reset_password_expires_at = None
    db.commit()
    logger.info(f"[auth] Password reset completed for {user.email}")
    return {"message": "Password has been successfully reset. Please login with your new password"}


def change_password(db: Session, user: User, old_password: Optional[str], new_password: Optional[str]) -> Dict[str, bool]:
    if not old_password or not old_password.strip():
        raise ValidationFailed("Old password is required")
    if not new_password or not new_password.strip():
        raise ValidationFailed("New password is required")
    _check_new_password(new_password, f"New password must be at least {settings.MIN_PASSWORD_LENGTH} characters long")

    if not verify_password(old_password, user.hashed_password):
        raise ValidationFailed("Old password is incorrect")

    user.hashed_password = get_password_hash(new_password)
    db.commit()
    logger.info(f"[auth] Password changed for {user.email}")
    return {"ok": True}


def update_username(db: Session, user: User, username: Optional[str]) -> Dict[str, Any]:
    if not username or not username.strip():
        raise ValidationFailed("Username is required")
    username = username.strip()

    existing = get_user_by_username(db, username)
    if existing and existing.id != user.id:
        raise ValidationFailed("Username is already taken. Try another one")

    user.username = username
    db.commit()
    db.refresh(user)
    return user.to_dict()


def update_profile(
    db: Session,
    user: User,
    fields: Dict[str, Optional[str]],
    images=None,
    photo: Optional[RawImage] = None,
    logo: Optional[RawImage] = None,
) -> Dict[str, Any]:
    """
    Update profile text fields and pictures

    Blank values are ignored; `photo` and `logo` go through the image store.
    """
    for name in PROFILE_FIELDS:
        value = fields.get(name)
        if value and value.strip():
            setattr(user, name, value.strip())

    for attr, image in (("photo", photo), ("logo", logo)):
        if image is None:
            continue
        try:
            stored = images.store([image], user.id)
        except ImageStorageError as e:
            logger.error(f"[auth] {attr} upload for {user.email} failed: {e}")
            raise UpstreamFailure("Something went wrong. Try again.") from e
        setattr(user, attr, stored[0]["url"])

    db.commit()
    db.refresh(user)
    return {"user": user.to_dict()}
