from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.security import create_access_token
from app.db.session import get_db
from app.models.user import User
from app.routers.deps import get_current_user
from app.routers.responses import ok
from app.schemas.api_key import ApiKeyRead
from app.schemas.auth import (
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    UserRead,
    VerifyOtpRequest,
)
from app.services import api_keys as api_key_service
from app.services import users as user_service

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_session(response: Response, user: User) -> dict:
    settings = get_settings()
    token = create_access_token(user.id)
    response.set_cookie(
        settings.token_cookie_name,
        token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return {"token": token, "user": UserRead.model_validate(user)}


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> dict:
    user = user_service.create_user(db, payload.name, payload.email, payload.password)
    return ok(
        {"email": user.email},
        message="User registered successfully. Please check your email for OTP verification.",
    )


@router.post("/verify-otp")
def verify_otp(payload: VerifyOtpRequest, response: Response, db: Session = Depends(get_db)) -> dict:
    user = user_service.verify_otp(db, payload.email, payload.otp)
    return ok(_issue_session(response, user), message="Email verified successfully")


@router.post("/resend-otp")
def resend_otp(payload: EmailRequest, db: Session = Depends(get_db)) -> dict:
    user_service.resend_otp(db, payload.email)
    return ok(message="OTP sent successfully")


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)) -> dict:
    user = user_service.authenticate(db, payload.email, payload.password)
    return ok(_issue_session(response, user), message="Logged in successfully")


@router.post("/forgot-password")
def forgot_password(payload: EmailRequest, db: Session = Depends(get_db)) -> dict:
    user_service.request_password_reset(db, payload.email)
    return ok(message="Password reset email sent")


@router.put("/reset-password")
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)) -> dict:
    user_service.reset_password(db, payload.token, payload.password)
    return ok(message="Password reset successful")


@router.get("/me")
def me(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> dict:
    keys = api_key_service.list_keys(db, current_user)
    current_user.roll_quota_window()
    return ok(
        {
            "user": UserRead.model_validate(current_user),
            "api_keys": [ApiKeyRead.from_key(key) for key in keys],
        }
    )


@router.put("/update-profile")
def update_profile(
    payload: UpdateProfileRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    email_changed = user_service.update_profile(db, current_user, payload.name, payload.email)
    message = (
        "Profile updated. Please verify your new email address."
        if email_changed
        else "Profile updated successfully"
    )
    return ok(UserRead.model_validate(current_user), message=message)


@router.get("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(get_settings().token_cookie_name)
    return ok(message="Logged out successfully")
