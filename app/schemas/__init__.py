from app.schemas.admin import AdminLogRead, RoleUpdate
from app.schemas.api_key import AdminApiKeyRead, ApiKeyCreate, ApiKeyCreated, ApiKeyRead
from app.schemas.auth import (
    AdminUserRead,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    UserRead,
    UserSummary,
    VerifyOtpRequest,
)
from app.schemas.contact import ContactCreate, ContactRead, ContactStatusUpdate
from app.schemas.upload import AdminUploadRead, UploadRead

__all__ = [
    "RegisterRequest",
    "VerifyOtpRequest",
    "EmailRequest",
    "LoginRequest",
    "ResetPasswordRequest",
    "UpdateProfileRequest",
    "UserSummary",
    "UserRead",
    "AdminUserRead",
    "UploadRead",
    "AdminUploadRead",
    "ApiKeyCreate",
    "ApiKeyCreated",
    "ApiKeyRead",
    "AdminApiKeyRead",
    "ContactCreate",
    "ContactRead",
    "ContactStatusUpdate",
    "RoleUpdate",
    "AdminLogRead",
]
