from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "CloudPrime API"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False
    api_prefix: str = "/api"

    database_url: str = "sqlite:///./app.db"
    auto_create_tables: bool = True

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 30
    token_cookie_name: str = "token"
    cookie_secure: bool = False

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "https://cloudprime.netlify.app"]
    )
    rate_limit_per_minute: int = 100

    upload_dir: str = "uploads"
    max_upload_size: int = 100 * 1024 * 1024
    upload_limit_per_month: int = 100
    upload_lifetime_days: int = 365

    max_api_keys_per_user: int = 5
    api_key_lifetime_days: int = 365

    otp_ttl_minutes: int = 10
    reset_token_ttl_minutes: int = 60

    image_host_url: str = "https://imageserve.pythonanywhere.com/user/api/v2/upload-image/"
    image_host_field: str = "image"
    image_host_timeout: float = 60.0

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    from_name: str = "CloudPrime"
    from_email: str = "noreply@cloudprime.app"
    frontend_url: str = "http://localhost:3000"

    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = ""
    celery_result_backend: str = ""
    celery_task_always_eager: bool = False

    def get_celery_broker_url(self) -> str:
        return self.celery_broker_url or self.redis_url

    def get_celery_result_backend(self) -> str:
        return self.celery_result_backend or self.redis_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
