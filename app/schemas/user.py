from pydantic import BaseModel
from typing import Optional


class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    newPassword: Optional[str] = None


class PasswordChange(BaseModel):
    oldPassword: Optional[str] = None
    newPassword: Optional[str] = None


class UsernameUpdate(BaseModel):
    username: Optional[str] = None
