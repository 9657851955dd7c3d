from datetime import datetime, timedelta

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.security import generate_api_key
from app.db.base import Base
from app.models.common import CreatedAtMixin, UUIDPrimaryKeyMixin, as_utc, utcnow

MASKED_KEY = "••••••••"


class ApiKey(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "api_keys"

    key: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False, default=generate_api_key)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: utcnow() + timedelta(days=365), nullable=False
    )

    owner = relationship("User", back_populates="api_keys")
    uploads = relationship("Upload", back_populates="api_key")

    def is_usable(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self.is_active and now < as_utc(self.expires_at)

    @property
    def display_key(self) -> str:
        return self.key if self.is_active else MASKED_KEY
