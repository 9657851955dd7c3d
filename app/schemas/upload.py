from datetime import datetime

from pydantic import BaseModel

from app.models.upload import Upload
from app.schemas.auth import UserSummary
from app.services.storage import format_file_size


class UploadRead(BaseModel):
    id: str
    file_name: str
    original_name: str
    file_type: str
    extension: str
    file_size: str
    file_size_bytes: int
    mime_type: str
    public_url: str
    upload_method: str
    uploaded_at: datetime
    expires_at: datetime
    is_expired: bool
    is_public: bool
    views: int
    downloads: int

    @classmethod
    def _fields(cls, upload: Upload) -> dict:
        return {
            "id": upload.id,
            "file_name": upload.file_name,
            "original_name": upload.original_name,
            "file_type": upload.file_type,
            "extension": upload.extension,
            "file_size": format_file_size(upload.file_size),
            "file_size_bytes": upload.file_size,
            "mime_type": upload.mime_type,
            "public_url": upload.public_url,
            "upload_method": upload.upload_method,
            "uploaded_at": upload.created_at,
            "expires_at": upload.expires_at,
            "is_expired": upload.is_expired,
            "is_public": upload.is_public,
            "views": upload.views,
            "downloads": upload.downloads,
        }

    @classmethod
    def from_upload(cls, upload: Upload) -> "UploadRead":
        return cls(**cls._fields(upload))


class AdminUploadRead(UploadRead):
    owner: UserSummary | None = None
    api_key_name: str | None = None

    @classmethod
    def from_upload(cls, upload: Upload) -> "AdminUploadRead":
        return cls(
            **cls._fields(upload),
            owner=UserSummary.model_validate(upload.owner) if upload.owner else None,
            api_key_name=upload.api_key.name if upload.api_key else None,
        )
