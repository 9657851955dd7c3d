import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.core.errors import NotFoundError, SelfModificationForbidden, ValidationError
from app.models.admin_log import AdminLog
from app.models.api_key import ApiKey
from app.models.common import utcnow
from app.models.contact import Contact
from app.models.upload import Upload
from app.models.user import ROLES, User
from app.services.audit import RequestMeta, record_admin_action
from app.services.pagination import Page, paginate
from app.services.storage import delete_file_if_exists
from app.services.uploads import remove_upload

logger = logging.getLogger(__name__)


def _window_counts(db: Session, model, now: datetime) -> dict:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    def count_since(since: datetime | None) -> int:
        stmt = select(func.count(model.id))
        if since is not None:
            stmt = stmt.where(model.created_at >= since)
        return int(db.scalar(stmt) or 0)

    return {
        "total": count_since(None),
        "today": count_since(today),
        "week": count_since(today - timedelta(days=7)),
        "month": count_since(today - timedelta(days=30)),
    }


def dashboard_stats(db: Session) -> dict:
    now = utcnow()
    storage_usage = db.scalar(select(func.coalesce(func.sum(Upload.file_size), 0))) or 0
    users_by_role = db.execute(select(User.role, func.count(User.id)).group_by(User.role)).all()
    uploads_by_type = db.execute(select(Upload.file_type, func.count(Upload.id)).group_by(Upload.file_type)).all()

    day = func.date(Upload.created_at).label("day")
    daily_uploads = db.execute(
        select(day, func.count(Upload.id))
        .where(Upload.created_at >= now - timedelta(days=7))
        .group_by(day)
        .order_by(day)
    ).all()

    recent_users = db.scalars(select(User).order_by(User.created_at.desc()).limit(5)).all()
    recent_uploads = db.scalars(
        select(Upload).options(selectinload(Upload.owner)).order_by(Upload.created_at.desc()).limit(10)
    ).all()

    return {
        "stats": {
            "users": _window_counts(db, User, now),
            "uploads": _window_counts(db, Upload, now),
            "api_keys": _window_counts(db, ApiKey, now),
            "contacts": _window_counts(db, Contact, now),
            "storage_usage": int(storage_usage),
        },
        "charts": {
            "users_by_role": [{"role": role, "count": count} for role, count in users_by_role],
            "uploads_by_type": [{"file_type": file_type, "count": count} for file_type, count in uploads_by_type],
            "daily_uploads": [{"date": str(value), "count": count} for value, count in daily_uploads],
        },
        "recent": {
            "users": list(recent_users),
            "uploads": list(recent_uploads),
        },
    }


def list_users(db: Session, page: int = 1, limit: int = 10) -> Page:
    return paginate(db, select(User).order_by(User.created_at.desc()), page, limit)


def list_all_uploads(db: Session, page: int = 1, limit: int = 10) -> Page:
    stmt = (
        select(Upload)
        .options(selectinload(Upload.owner), selectinload(Upload.api_key))
        .order_by(Upload.created_at.desc())
    )
    return paginate(db, stmt, page, limit)


def list_all_keys(db: Session, page: int = 1, limit: int = 10) -> Page:
    stmt = select(ApiKey).options(selectinload(ApiKey.owner)).order_by(ApiKey.created_at.desc())
    return paginate(db, stmt, page, limit)


def list_admin_logs(db: Session, page: int = 1, limit: int = 10) -> Page:
    stmt = select(AdminLog).options(selectinload(AdminLog.admin)).order_by(AdminLog.created_at.desc())
    return paginate(db, stmt, page, limit)


def _get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def update_user_role(db: Session, user_id: str, role: str, admin: User, meta: RequestMeta | None = None) -> User:
    if role not in ROLES:
        raise ValidationError("Invalid role")
    user = _get_user(db, user_id)
    if user.id == admin.id and role != "admin":
        raise SelfModificationForbidden("Cannot change your own role to user")

    old_role = user.role
    user.role = role
    db.commit()
    record_admin_action(db, admin, "UPDATE_ROLE", "User", user.id, {"old_role": old_role, "new_role": role}, meta)
    return user


def delete_user(db: Session, user_id: str, admin: User, meta: RequestMeta | None = None) -> None:
    user = _get_user(db, user_id)
    if user.id == admin.id:
        raise SelfModificationForbidden("Cannot delete your own account")

    email = user.email
    upload_count = len(user.uploads)
    key_count = len(user.api_keys)
    for upload in user.uploads:
        delete_file_if_exists(upload.file_path)
    db.delete(user)
    db.commit()
    logger.info("user_deleted", extra={"user_id": user_id, "uploads": upload_count, "api_keys": key_count})
    record_admin_action(
        db,
        admin,
        "DELETE",
        "User",
        user_id,
        {"email": email, "uploads_deleted": upload_count, "api_keys_deleted": key_count},
        meta,
    )


def admin_delete_upload(db: Session, upload_id: str, admin: User, meta: RequestMeta | None = None) -> None:
    upload = db.scalar(select(Upload).options(selectinload(Upload.owner)).where(Upload.id == upload_id))
    if upload is None:
        raise NotFoundError("Upload not found")
    details = {"file_name": upload.file_name, "user": upload.owner.email if upload.owner else None}
    remove_upload(db, upload)
    record_admin_action(db, admin, "DELETE", "Upload", upload_id, details, meta)
