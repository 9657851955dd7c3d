"""Upload lifecycle: quota check, proxy to the image host, persist, and delete.

A staged file is always removed before these functions return, whichever way
they exit. An Upload row is written only after the image host accepted the
file, and it is committed together with the owner's quota increment.
"""

import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import NoFileProvided, NotFoundError, QuotaExceeded
from app.models.api_key import ApiKey
from app.models.common import utcnow
from app.models.upload import Upload
from app.models.user import User
from app.services.image_host import ImageHostClient
from app.services.pagination import Page, paginate
from app.services.storage import StagedFile, delete_file_if_exists, staged_file
from app.services.users import can_upload

logger = logging.getLogger(__name__)


async def process_upload(
    db: Session,
    user: User,
    staged: StagedFile | None,
    image_host: ImageHostClient,
    *,
    method: str = "dashboard",
    api_key: ApiKey | None = None,
) -> Upload:
    if staged is None:
        raise NoFileProvided()

    settings = get_settings()
    with staged_file(staged):
        if not can_upload(user):
            raise QuotaExceeded(f"Monthly upload limit ({settings.upload_limit_per_month}) reached")

        public_url = await image_host.upload(staged)

    upload = Upload(
        user_id=user.id,
        api_key_id=api_key.id if api_key is not None else None,
        file_name=staged.file_name,
        original_name=staged.original_name,
        file_type=staged.file_type,
        file_size=staged.size,
        mime_type=staged.content_type,
        file_path=None,
        public_url=public_url,
        upload_method=method,
        expires_at=utcnow() + timedelta(days=settings.upload_lifetime_days),
    )
    db.add(upload)
    user.uploads_this_month += 1
    db.commit()
    logger.info(
        "upload_committed",
        extra={
            "upload_id": upload.id,
            "user_id": user.id,
            "method": method,
            "file_type": upload.file_type,
            "size": upload.file_size,
        },
    )
    return upload


def list_uploads(db: Session, owner: User, page: int = 1, limit: int = 10) -> Page:
    stmt = select(Upload).where(Upload.user_id == owner.id).order_by(Upload.created_at.desc())
    return paginate(db, stmt, page, limit)


def release_quota(user: User | None) -> None:
    if user is None:
        return
    user.roll_quota_window()
    if user.uploads_this_month > 0:
        user.uploads_this_month -= 1


def remove_upload(db: Session, upload: Upload) -> None:
    delete_file_if_exists(upload.file_path)
    release_quota(upload.owner)
    db.delete(upload)
    db.commit()
    logger.info("upload_deleted", extra={"upload_id": upload.id, "user_id": upload.user_id})


def delete_upload(db: Session, upload_id: str, owner: User) -> None:
    upload = db.scalar(select(Upload).where(Upload.id == upload_id, Upload.user_id == owner.id))
    if upload is None:
        raise NotFoundError("Upload not found")
    remove_upload(db, upload)
