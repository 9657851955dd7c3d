from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.user import User
from app.routers.deps import request_meta, require_admin
from app.routers.responses import ok, paged
from app.schemas.admin import AdminLogRead, RoleUpdate
from app.schemas.api_key import AdminApiKeyRead
from app.schemas.auth import AdminUserRead, UserRead
from app.schemas.contact import ContactRead, ContactStatusUpdate
from app.schemas.upload import AdminUploadRead
from app.services import admin as admin_service
from app.services import contacts as contact_service
from app.services.audit import RequestMeta

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats")
def get_stats(db: Session = Depends(get_db), admin: User = Depends(require_admin)) -> dict:
    stats = admin_service.dashboard_stats(db)
    stats["recent"] = {
        "users": [UserRead.model_validate(user) for user in stats["recent"]["users"]],
        "uploads": [AdminUploadRead.from_upload(upload) for upload in stats["recent"]["uploads"]],
    }
    return ok(stats)


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    result = admin_service.list_users(db, page, limit)
    return paged(result, [AdminUserRead.model_validate(user) for user in result.items])


@router.put("/users/{user_id}/role")
def update_user_role(
    user_id: str,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    meta: RequestMeta = Depends(request_meta),
) -> dict:
    user = admin_service.update_user_role(db, user_id, payload.role, admin, meta)
    return ok(AdminUserRead.model_validate(user), message="User role updated successfully")


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    meta: RequestMeta = Depends(request_meta),
) -> dict:
    admin_service.delete_user(db, user_id, admin, meta)
    return ok(message="User and all associated data deleted successfully")


@router.get("/uploads")
def list_uploads(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    result = admin_service.list_all_uploads(db, page, limit)
    return paged(result, [AdminUploadRead.from_upload(upload) for upload in result.items])


@router.delete("/uploads/{upload_id}")
def delete_upload(
    upload_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    meta: RequestMeta = Depends(request_meta),
) -> dict:
    admin_service.admin_delete_upload(db, upload_id, admin, meta)
    return ok(message="Upload deleted successfully")


@router.get("/api-keys")
def list_api_keys(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    result = admin_service.list_all_keys(db, page, limit)
    return paged(result, [AdminApiKeyRead.from_key(key) for key in result.items])


@router.get("/contacts")
def list_contacts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    result = contact_service.list_contacts(db, page, limit)
    return paged(result, [ContactRead.model_validate(contact) for contact in result.items])


@router.put("/contacts/{contact_id}/status")
def update_contact_status(
    contact_id: str,
    payload: ContactStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    meta: RequestMeta = Depends(request_meta),
) -> dict:
    contact = contact_service.update_contact_status(db, contact_id, payload.status, admin, meta)
    return ok(ContactRead.model_validate(contact), message="Contact status updated successfully")


@router.get("/logs")
def list_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    result = admin_service.list_admin_logs(db, page, limit)
    return paged(result, [AdminLogRead.model_validate(entry) for entry in result.items])
