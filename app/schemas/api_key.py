from datetime import datetime

from pydantic import BaseModel, Field

from app.models.api_key import ApiKey
from app.schemas.auth import UserSummary


class ApiKeyCreate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    name: str = Field(min_length=1, max_length=100)


class ApiKeyCreated(BaseModel):
    id: str
    key: str
    name: str
    created_at: datetime
    expires_at: datetime

    model_config = {"from_attributes": True}


class ApiKeyRead(BaseModel):
    id: str
    name: str
    key: str
    is_active: bool
    last_used_at: datetime | None
    usage_count: int
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_key(cls, api_key: ApiKey) -> "ApiKeyRead":
        return cls(
            id=api_key.id,
            name=api_key.name,
            key=api_key.display_key,
            is_active=api_key.is_active,
            last_used_at=api_key.last_used_at,
            usage_count=api_key.usage_count,
            created_at=api_key.created_at,
            expires_at=api_key.expires_at,
        )


class AdminApiKeyRead(ApiKeyRead):
    owner: UserSummary | None = None

    @classmethod
    def from_key(cls, api_key: ApiKey) -> "AdminApiKeyRead":
        base = ApiKeyRead.from_key(api_key).model_dump()
        return cls(**base, owner=UserSummary.model_validate(api_key.owner) if api_key.owner else None)
