import os
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["RATE_LIMIT_PER_MINUTE"] = "10000"
os.environ["UPLOAD_LIMIT_PER_MONTH"] = "3"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["SMTP_HOST"] = ""

from app.core.config import get_settings
from app.db.session import Database
from app.main import create_app
from app.models.user import User
from app.services.image_host import ImageHostClient

IMAGE_URL = "https://images.example.com/u/abc123.png"


class FakeImageHost:
    """Request handler for ``httpx.MockTransport`` that records what it was sent."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.payload: dict = {"image_url": IMAGE_URL}
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch) -> Path:
    path = tmp_path / "uploads"
    monkeypatch.setattr(get_settings(), "upload_dir", str(path))
    return path


@pytest.fixture()
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    db.create_all()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture()
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture()
def image_host() -> FakeImageHost:
    return FakeImageHost()


@pytest.fixture()
def client(database, image_host):
    host = ImageHostClient("https://images.example.com/upload", transport=httpx.MockTransport(image_host))
    app = create_app(database=database, image_host=host)
    with TestClient(app) as test_client:
        yield test_client


def _user_by_email(db_session, email: str) -> User:
    db_session.expire_all()
    return db_session.scalar(select(User).where(User.email == email))


@pytest.fixture()
def signup(client, db_session):
    """Register and verify an account, returning bearer headers for it."""

    def _signup(email="user@example.com", password="secret123", name="Test User", role="user") -> dict:
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        otp = _user_by_email(db_session, email).otp
        verify = client.post("/api/auth/verify-otp", json={"email": email, "otp": otp})
        assert verify.status_code == 200, verify.text
        client.cookies.clear()
        if role != "user":
            user = _user_by_email(db_session, email)
            user.role = role
            db_session.commit()
        return {"Authorization": f"Bearer {verify.json()['data']['token']}"}

    return _signup


@pytest.fixture()
def auth_headers(signup) -> dict:
    return signup()


@pytest.fixture()
def admin_headers(signup) -> dict:
    return signup(email="admin@example.com", name="Admin", role="admin")


@pytest.fixture()
def get_user(db_session):
    return lambda email: _user_by_email(db_session, email)
