from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.exceptions import Unauthorized
from app.core.security import decode_access_token
from app.database import get_db
from app.models.user import User
from app.services.email_service import SmtpNotifier
from app.services.geocoding import GoogleGeocoder
from app.services.image_service import RawImage, S3ImageStore

security = HTTPBearer(auto_error=False)


def _user_from_credentials(
    credentials: Optional[HTTPAuthorizationCredentials], db: Session
) -> Optional[User]:
    if credentials is None or not credentials.credentials:
        return None
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        return None
    return db.get(User, user_id)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    user = _user_from_credentials(credentials, db)
    if user is None:
        raise Unauthorized("Unauthorized")
    return user


def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Signed-in user when a valid token is sent, otherwise None."""
    return _user_from_credentials(credentials, db)


# ── Collaborators (one instance per process) ───────────────────────────────────

@lru_cache()
def get_geocoder() -> GoogleGeocoder:
    return GoogleGeocoder()


@lru_cache()
def get_image_store() -> S3ImageStore:
    return S3ImageStore()


@lru_cache()
def get_notifier() -> SmtpNotifier:
    return SmtpNotifier()


def to_raw_images(files: Optional[List[UploadFile]]) -> List[RawImage]:
    """Read uploads into memory; empty file parts are skipped."""
    images = []
    for upload in files or []:
        content = upload.file.read()
        if content:
            images.append(RawImage(upload.filename or "image", content, upload.content_type))
    return images
