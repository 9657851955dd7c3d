from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.common import TimestampMixin, UUIDPrimaryKeyMixin, as_utc, utcnow

ROLES = ("user", "admin")


def quota_window_expired(reset_date: datetime | None, now: datetime) -> bool:
    """True when ``now`` falls in a different calendar month than ``reset_date``."""
    if reset_date is None:
        return True
    reset_date = as_utc(reset_date)
    return (reset_date.year, reset_date.month) != (now.year, now.month)


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[str] = mapped_column(String(255), default="default-avatar.png", nullable=False)
    role: Mapped[str] = mapped_column(String(16), default="user", nullable=False, index=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    otp: Mapped[str | None] = mapped_column(String(6), nullable=True)
    otp_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reset_password_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    reset_password_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    login_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    uploads_this_month: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    monthly_reset_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    uploads = relationship("Upload", back_populates="owner", cascade="all, delete-orphan")
    api_keys = relationship("ApiKey", back_populates="owner", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def roll_quota_window(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        if not quota_window_expired(self.monthly_reset_date, now):
            return False
        self.uploads_this_month = 0
        self.monthly_reset_date = now
        return True


@event.listens_for(User, "before_update")
def _roll_quota_window_on_update(mapper, connection, target: User) -> None:
    target.roll_quota_window()
