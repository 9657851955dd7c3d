import logging
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import InvalidKey, KeyLimitReached, NotFoundError, ValidationError
from app.models.api_key import ApiKey
from app.models.common import utcnow
from app.models.upload import Upload
from app.models.user import User

logger = logging.getLogger(__name__)


def usage_percentage(used: int, limit: int) -> int:
    return round(used / limit * 100) if limit else 0


def issue_key(db: Session, owner: User, name: str) -> ApiKey:
    settings = get_settings()
    name = (name or "").strip()
    if not name:
        raise ValidationError("Please provide a name for the API key")
    existing = db.scalar(select(func.count(ApiKey.id)).where(ApiKey.user_id == owner.id)) or 0
    if existing >= settings.max_api_keys_per_user:
        raise KeyLimitReached(f"Maximum API key limit ({settings.max_api_keys_per_user}) reached")
    api_key = ApiKey(
        user_id=owner.id,
        name=name,
        expires_at=utcnow() + timedelta(days=settings.api_key_lifetime_days),
    )
    db.add(api_key)
    db.commit()
    logger.info("api_key_issued", extra={"user_id": owner.id, "api_key_id": api_key.id})
    return api_key


def list_keys(db: Session, owner: User) -> list[ApiKey]:
    stmt = select(ApiKey).where(ApiKey.user_id == owner.id).order_by(ApiKey.created_at.desc())
    return list(db.scalars(stmt).all())


def authenticate_key(db: Session, secret: str | None) -> ApiKey:
    if not secret:
        raise InvalidKey("API key is required")
    api_key = db.scalar(select(ApiKey).where(ApiKey.key == secret))
    now = utcnow()
    if api_key is None or not api_key.is_usable(now):
        raise InvalidKey()
    api_key.usage_count += 1
    api_key.last_used_at = now
    db.commit()
    return api_key


def _owned_key(db: Session, key_id: str, owner: User) -> ApiKey:
    api_key = db.scalar(select(ApiKey).where(ApiKey.id == key_id, ApiKey.user_id == owner.id))
    if api_key is None:
        raise NotFoundError("API key not found")
    return api_key


def toggle_key(db: Session, key_id: str, owner: User) -> ApiKey:
    api_key = _owned_key(db, key_id, owner)
    api_key.is_active = not api_key.is_active
    db.commit()
    return api_key


def revoke_key(db: Session, key_id: str, owner: User) -> None:
    api_key = _owned_key(db, key_id, owner)
    db.delete(api_key)
    db.commit()
    logger.info("api_key_revoked", extra={"user_id": owner.id, "api_key_id": key_id})


def key_stats(db: Session, owner: User) -> dict:
    limit = get_settings().upload_limit_per_month
    keys = list_keys(db, owner)
    api_uploads = db.scalar(
        select(func.count(Upload.id)).where(Upload.user_id == owner.id, Upload.upload_method == "api")
    ) or 0
    owner.roll_quota_window()
    return {
        "total_api_keys": len(keys),
        "active_api_keys": sum(1 for key in keys if key.is_active),
        "total_api_uploads": api_uploads,
        "uploads_this_month": owner.uploads_this_month,
        "upload_limit": limit,
        "usage_percentage": usage_percentage(owner.uploads_this_month, limit),
        "api_usage_count": sum(key.usage_count for key in keys),
    }


def key_usage(db: Session, api_key: ApiKey) -> dict:
    limit = get_settings().upload_limit_per_month
    owner = api_key.owner
    total_uploads = db.scalar(
        select(func.count(Upload.id)).where(Upload.user_id == owner.id, Upload.upload_method == "api")
    ) or 0
    owner.roll_quota_window()
    return {
        "key_name": api_key.name,
        "is_active": api_key.is_active,
        "last_used_at": api_key.last_used_at,
        "usage_count": api_key.usage_count,
        "total_uploads": total_uploads,
        "uploads_this_month": owner.uploads_this_month,
        "upload_limit": limit,
        "usage_percentage": usage_percentage(owner.uploads_this_month, limit),
        "created_at": api_key.created_at,
        "expires_at": api_key.expires_at,
    }
