from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class ContactCreate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)


class ContactStatusUpdate(BaseModel):
    status: str


class ContactRead(BaseModel):
    id: str
    name: str
    email: str
    subject: str
    message: str
    status: str
    ip_address: str | None
    user_agent: str | None
    created_at: datetime
    replied_at: datetime | None
    replied_by_id: str | None

    model_config = {"from_attributes": True}
