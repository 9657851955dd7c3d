from datetime import datetime

from pydantic import BaseModel

from app.schemas.auth import UserSummary


class RoleUpdate(BaseModel):
    role: str


class AdminLogRead(BaseModel):
    id: str
    admin_id: str
    admin: UserSummary | None
    action: str
    resource: str
    resource_id: str | None
    details: dict
    ip_address: str | None
    user_agent: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
