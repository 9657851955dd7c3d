from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.user import User
from app.routers.deps import get_current_user, get_image_host
from app.routers.responses import ok, paged
from app.schemas.upload import UploadRead
from app.services import uploads as upload_service
from app.services.image_host import ImageHostClient
from app.services.storage import save_upload_file

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("/upload-image", status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    image_host: ImageHostClient = Depends(get_image_host),
) -> dict:
    staged = await save_upload_file(file) if file is not None else None
    upload = await upload_service.process_upload(db, current_user, staged, image_host, method="dashboard")
    return ok(UploadRead.from_upload(upload), message="File uploaded successfully")


@router.get("")
def list_uploads(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    result = upload_service.list_uploads(db, current_user, page, limit)
    return paged(result, [UploadRead.from_upload(upload) for upload in result.items])


@router.delete("/{upload_id}")
def delete_upload(
    upload_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    upload_service.delete_upload(db, upload_id, current_user)
    return ok(message="File deleted successfully")
