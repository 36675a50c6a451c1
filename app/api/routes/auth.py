"""
Authentication Endpoints
Login (with signup on first use), password recovery, and profile management
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, get_image_store, get_notifier, to_raw_images
from app.models.user import User
from app.schemas.user import ForgotPasswordRequest, PasswordChange, ResetPasswordRequest, UserLogin, UsernameUpdate
from app.services import auth_service

router = APIRouter(tags=["Authentication"])


@router.get("/")
def api_root():
    return {"data": "hello from the EstateList API"}


@router.post("/login")
def login(credentials: UserLogin, db: Session = Depends(get_db), notifier=Depends(get_notifier)):
    """Sign in; an unknown email creates the account"""
    return auth_service.login_or_signup(db, credentials.email, credentials.password, notifier)


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordRequest, db: Session = Depends(get_db), notifier=Depends(get_notifier)):
    return auth_service.request_password_reset(db, body.email, notifier)


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    return auth_service.reset_password(db, body.token, body.newPassword)


@router.get("/current-user")
def current_user_info(current_user: User = Depends(get_current_user)):
    return {"user": current_user.to_dict()}


@router.put("/change-password")
def change_password(
    body: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return auth_service.change_password(db, current_user, body.oldPassword, body.newPassword)


@router.put("/update-username")
def update_username(
    body: UsernameUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return auth_service.update_username(db, current_user, body.username)


@router.put("/update-profile")
def update_profile(
    name: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    company: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    about: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    logo: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    image_store=Depends(get_image_store),
):
    """Update profile fields; `photo` and `logo` are optional image uploads"""
    fields = {"name": name, "phone": phone, "company": company, "address": address, "about": about}
    photos = to_raw_images([photo] if photo else None)
    logos = to_raw_images([logo] if logo else None)
    return auth_service.update_profile(
        db,
        current_user,
        fields,
        images=image_store,
        photo=photos[0] if photos else None,
        logo=logos[0] if logos else None,
    )
