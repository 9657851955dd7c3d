import logging
from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidOrExpiredOTP,
    InvalidResetToken,
    NotFoundError,
    UnverifiedAccount,
    ValidationError,
)
from app.core.security import generate_otp, generate_reset_token, hash_password, hash_token, verify_password
from app.models.common import as_utc, utcnow
from app.models.user import User
from app.services.mailer import render_password_reset_email, render_verification_email
from app.workers.tasks import queue_email

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == normalize_email(email)))


def issue_otp(user: User) -> str:
    settings = get_settings()
    otp = generate_otp()
    user.otp = otp
    user.otp_expires_at = utcnow() + timedelta(minutes=settings.otp_ttl_minutes)
    return otp


def send_verification_otp(user: User, otp: str) -> None:
    subject, html = render_verification_email(user.name, otp)
    queue_email(user.email, subject, html)


def create_user(db: Session, name: str, email: str, password: str) -> User:
    if get_user_by_email(db, email):
        raise DuplicateEmail()
    user = User(name=name.strip(), email=normalize_email(email), password_hash=hash_password(password))
    otp = issue_otp(user)
    db.add(user)
    db.commit()
    logger.info("user_registered", extra={"user_id": user.id})
    send_verification_otp(user, otp)
    return user


def verify_otp(db: Session, email: str, otp: str) -> User:
    user = get_user_by_email(db, email)
    if (
        user is None
        or not user.otp
        or user.otp != otp.strip()
        or user.otp_expires_at is None
        or as_utc(user.otp_expires_at) <= utcnow()
    ):
        raise InvalidOrExpiredOTP()
    user.is_verified = True
    user.otp = None
    user.otp_expires_at = None
    db.commit()
    logger.info("user_verified", extra={"user_id": user.id})
    return user


def resend_otp(db: Session, email: str) -> User:
    user = get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User not found")
    if user.is_verified:
        raise ValidationError("User already verified")
    otp = issue_otp(user)
    db.commit()
    send_verification_otp(user, otp)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    if not user.is_verified:
        otp = issue_otp(user)
        db.commit()
        send_verification_otp(user, otp)
        raise UnverifiedAccount(extra={"requires_verification": True, "email": user.email})
    user.last_login_at = utcnow()
    user.login_count += 1
    db.commit()
    return user


def can_upload(user: User) -> bool:
    user.roll_quota_window()
    return user.uploads_this_month < get_settings().upload_limit_per_month


def update_profile(db: Session, user: User, name: str | None = None, email: str | None = None) -> bool:
    """Apply profile changes; returns True when a new email now awaits verification."""
    email_changed = False
    if email and normalize_email(email) != user.email:
        existing = get_user_by_email(db, email)
        if existing is not None and existing.id != user.id:
            raise DuplicateEmail("Email already in use")
        user.email = normalize_email(email)
        user.is_verified = False
        email_changed = True
    if name:
        user.name = name.strip()
    otp = issue_otp(user) if email_changed else None
    db.commit()
    if otp:
        send_verification_otp(user, otp)
    return email_changed


def request_password_reset(db: Session, email: str) -> str:
    """Store the reset digest, email the link, and return the raw token."""
    settings = get_settings()
    user = get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User not found")
    token, digest = generate_reset_token()
    user.reset_password_token = digest
    user.reset_password_expires_at = utcnow() + timedelta(minutes=settings.reset_token_ttl_minutes)
    db.commit()

    reset_url = f"{settings.frontend_url.rstrip('/')}/reset-password?{urlencode({'token': token})}"
    subject, html = render_password_reset_email(user.name, reset_url)
    queue_email(user.email, subject, html)
    return token


def reset_password(db: Session, token: str, password: str) -> User:
    user = db.scalar(select(User).where(User.reset_password_token == hash_token(token)))
    if user is None:
        raise InvalidResetToken()
    expires_at = as_utc(user.reset_password_expires_at)
    valid = expires_at is not None and expires_at > utcnow()
    if valid:
        user.password_hash = hash_password(password)
    user.reset_password_token = None
    user.reset_password_expires_at = None
    db.commit()
    if not valid:
        raise InvalidResetToken()
    logger.info("password_reset", extra={"user_id": user.id})
    return user
