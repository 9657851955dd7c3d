from datetime import timedelta

import httpx
from fastapi.testclient import TestClient
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.models.common import utcnow
from app.models.upload import Upload
from app.models.user import User, quota_window_expired

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"0" * 64


def _upload(client, headers, name="photo.png", content=PNG_BYTES, content_type="image/png"):
    return client.post("/api/uploads/upload-image", headers=headers, files={"file": (name, content, content_type)})


def _staged_files(upload_dir):
    return [path for path in upload_dir.rglob("*") if path.is_file()] if upload_dir.exists() else []


def _upload_count(db_session) -> int:
    db_session.expire_all()
    return db_session.scalar(select(func.count(Upload.id)))


def test_upload_proxies_file_and_counts_quota(client, auth_headers, image_host, upload_dir, get_user):
    response = _upload(client, auth_headers)
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["public_url"] == image_host.payload["image_url"]
    assert data["file_type"] == "image"
    assert data["extension"] == ".png"
    assert data["original_name"] == "photo.png"
    assert data["upload_method"] == "dashboard"
    assert data["file_size_bytes"] == len(PNG_BYTES)
    assert data["file_name"].startswith("file-") and data["file_name"].endswith(".png")

    assert len(image_host.requests) == 1
    sent = image_host.requests[0]
    assert sent.method == "POST"
    assert b'name="image"' in sent.content
    assert b'filename="photo.png"' in sent.content

    assert get_user("user@example.com").uploads_this_month == 1
    assert _staged_files(upload_dir) == []


def test_upload_without_file(client, auth_headers, image_host):
    response = client.post("/api/uploads/upload-image", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Please upload a file"
    assert image_host.requests == []


def test_upload_over_quota_never_reaches_image_host(
    client, auth_headers, db_session, image_host, upload_dir, get_user
):
    user = get_user("user@example.com")
    user.uploads_this_month = 3
    db_session.commit()

    response = _upload(client, auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Monthly upload limit (3) reached"
    assert image_host.requests == []
    assert _staged_files(upload_dir) == []
    assert _upload_count(db_session) == 0
    assert get_user("user@example.com").uploads_this_month == 3


def test_upstream_error_leaves_no_trace(client, auth_headers, db_session, image_host, upload_dir, get_user):
    image_host.status_code = 500
    image_host.payload = {"error": "boom"}

    response = _upload(client, auth_headers)
    assert response.status_code == 502
    assert response.json()["success"] is False
    assert _staged_files(upload_dir) == []
    assert _upload_count(db_session) == 0
    assert get_user("user@example.com").uploads_this_month == 0


def test_upstream_unreachable_leaves_no_trace(client, auth_headers, db_session, image_host, upload_dir):
    image_host.error = httpx.ConnectError("connection refused")

    response = _upload(client, auth_headers)
    assert response.status_code == 502
    assert response.json()["error"] == "Image host is unavailable"
    assert _staged_files(upload_dir) == []
    assert _upload_count(db_session) == 0


def test_upstream_response_without_url(client, auth_headers, db_session, image_host):
    image_host.payload = {"status": "ok"}

    response = _upload(client, auth_headers)
    assert response.status_code == 502
    assert _upload_count(db_session) == 0


def test_upstream_image_field_is_accepted(client, auth_headers, image_host):
    image_host.payload = {"image": "https://images.example.com/other.png"}

    response = _upload(client, auth_headers)
    assert response.status_code == 201
    assert response.json()["data"]["public_url"] == "https://images.example.com/other.png"


def test_document_upload_is_classified(client, auth_headers):
    response = _upload(client, auth_headers, name="report.pdf", content=b"%PDF-1.4", content_type="application/pdf")
    assert response.status_code == 201
    assert response.json()["data"]["file_type"] == "document"


def test_list_uploads_is_paginated(client, auth_headers):
    _upload(client, auth_headers, name="one.png")
    _upload(client, auth_headers, name="two.png")

    response = client.get("/api/uploads", headers=auth_headers, params={"page": 1, "limit": 1})
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"total": 2, "page": 1, "pages": 2, "limit": 1}
    assert len(body["data"]) == 1


def test_delete_upload_releases_quota(client, auth_headers, db_session, get_user):
    upload_id = _upload(client, auth_headers).json()["data"]["id"]
    assert get_user("user@example.com").uploads_this_month == 1

    response = client.delete(f"/api/uploads/{upload_id}", headers=auth_headers)
    assert response.status_code == 200
    assert get_user("user@example.com").uploads_this_month == 0
    assert _upload_count(db_session) == 0


def test_delete_never_drives_quota_negative(client, auth_headers, db_session, get_user):
    upload_id = _upload(client, auth_headers).json()["data"]["id"]
    user = get_user("user@example.com")
    user.uploads_this_month = 0
    db_session.commit()

    assert client.delete(f"/api/uploads/{upload_id}", headers=auth_headers).status_code == 200
    assert get_user("user@example.com").uploads_this_month == 0


def test_cannot_delete_someone_elses_upload(client, auth_headers, signup, db_session):
    upload_id = _upload(client, auth_headers).json()["data"]["id"]
    other_headers = signup(email="other@example.com")

    response = client.delete(f"/api/uploads/{upload_id}", headers=other_headers)
    assert response.status_code == 404
    assert _upload_count(db_session) == 1


def test_new_month_resets_quota_before_upload(client, auth_headers, db_session, get_user):
    last_month = utcnow().replace(day=1) - timedelta(days=1)
    # Core UPDATE bypasses the ORM hook that would roll the window on write.
    db_session.execute(
        update(User)
        .where(User.email == "user@example.com")
        .values(uploads_this_month=3, monthly_reset_date=last_month)
    )
    db_session.commit()

    response = _upload(client, auth_headers)
    assert response.status_code == 201, response.text

    user = get_user("user@example.com")
    assert user.uploads_this_month == 1
    assert not quota_window_expired(user.monthly_reset_date, utcnow())


def test_quota_window_expired_compares_calendar_months():
    now = utcnow().replace(year=2024, month=3, day=1, hour=0, minute=0)
    assert quota_window_expired(None, now)
    assert quota_window_expired(now.replace(month=2, day=29), now)
    assert quota_window_expired(now.replace(year=2023), now)
    assert not quota_window_expired(now.replace(day=31, hour=23), now)


def test_failed_commit_after_upstream_leaves_no_trace(
    client, auth_headers, db_session, image_host, upload_dir, get_user, monkeypatch
):
    def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    failing_client = TestClient(client.app, raise_server_exceptions=False)
    with monkeypatch.context() as patched:
        patched.setattr(Session, "commit", failing_commit)
        response = _upload(failing_client, auth_headers)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Server Error"}
    assert len(image_host.requests) == 1
    assert _staged_files(upload_dir) == []
    assert _upload_count(db_session) == 0
    assert get_user("user@example.com").uploads_this_month == 0
