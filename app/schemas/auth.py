from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    model_config = {"str_strip_whitespace": True}

    name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str


class EmailRequest(BaseModel):
    email: EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=6, max_length=128)


class UpdateProfileRequest(BaseModel):
    model_config = {"str_strip_whitespace": True}

    name: str | None = Field(default=None, min_length=1, max_length=50)
    email: EmailStr | None = None


class UserSummary(BaseModel):
    id: str
    name: str
    email: str

    model_config = {"from_attributes": True}


class UserRead(UserSummary):
    role: str
    avatar: str
    is_verified: bool
    uploads_this_month: int
    monthly_reset_date: datetime
    created_at: datetime


class AdminUserRead(UserRead):
    login_count: int
    last_login_at: datetime | None
