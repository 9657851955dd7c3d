from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.api_key import ApiKey
from app.models.user import User
from app.routers.deps import get_api_key, get_current_user, get_image_host
from app.routers.responses import ok
from app.schemas.api_key import ApiKeyCreate, ApiKeyCreated, ApiKeyRead
from app.schemas.upload import UploadRead
from app.services import api_keys as api_key_service
from app.services import uploads as upload_service
from app.services.image_host import ImageHostClient
from app.services.storage import save_upload_file

router = APIRouter(prefix="/api-keys", tags=["api-keys"])
public_router = APIRouter(prefix="/v1", tags=["public-api"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_api_key(
    payload: ApiKeyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    api_key = api_key_service.issue_key(db, current_user, payload.name)
    return ok(ApiKeyCreated.model_validate(api_key), message="API key generated successfully")


@router.get("")
def list_api_keys(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> dict:
    keys = api_key_service.list_keys(db, current_user)
    return ok([ApiKeyRead.from_key(key) for key in keys], count=len(keys))


@router.get("/stats")
def api_key_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> dict:
    return ok(api_key_service.key_stats(db, current_user))


@router.get("/usage")
def api_key_usage(db: Session = Depends(get_db), api_key: ApiKey = Depends(get_api_key)) -> dict:
    return ok(api_key_service.key_usage(db, api_key))


@router.put("/{key_id}/toggle")
def toggle_api_key(
    key_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    api_key = api_key_service.toggle_key(db, key_id, current_user)
    state = "activated" if api_key.is_active else "deactivated"
    return ok(ApiKeyRead.from_key(api_key), message=f"API key {state} successfully")


@router.delete("/{key_id}")
def delete_api_key(
    key_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    api_key_service.revoke_key(db, key_id, current_user)
    return ok(message="API key deleted successfully")


@public_router.post("/upload-image", status_code=status.HTTP_201_CREATED)
async def upload_with_api_key(
    file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    api_key: ApiKey = Depends(get_api_key),
    image_host: ImageHostClient = Depends(get_image_host),
) -> dict:
    staged = await save_upload_file(file) if file is not None else None
    upload = await upload_service.process_upload(
        db, api_key.owner, staged, image_host, method="api", api_key=api_key
    )
    return ok(UploadRead.from_upload(upload), message="File uploaded successfully via API")
