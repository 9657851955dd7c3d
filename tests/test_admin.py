from sqlalchemy import func, select

from app.models.admin_log import AdminLog
from app.models.api_key import ApiKey
from app.models.upload import Upload


def _upload(client, headers):
    return client.post(
        "/api/uploads/upload-image",
        headers=headers,
        files={"file": ("photo.png", b"\x89PNG\r\n\x1a\nabc", "image/png")},
    )


def _logs(db_session) -> list[AdminLog]:
    db_session.expire_all()
    return list(db_session.scalars(select(AdminLog).order_by(AdminLog.created_at)).all())


def test_admin_routes_require_admin_role(client, auth_headers):
    response = client.get("/api/admin/stats", headers=auth_headers)
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_admin_cannot_demote_self(client, admin_headers, get_user, db_session):
    admin = get_user("admin@example.com")

    response = client.put(f"/api/admin/users/{admin.id}/role", headers=admin_headers, json={"role": "user"})
    assert response.status_code == 400
    assert get_user("admin@example.com").role == "admin"
    assert _logs(db_session) == []


def test_admin_cannot_delete_self(client, admin_headers, get_user):
    admin = get_user("admin@example.com")

    response = client.delete(f"/api/admin/users/{admin.id}", headers=admin_headers)
    assert response.status_code == 400
    assert get_user("admin@example.com") is not None


def test_role_change_is_audited(client, admin_headers, auth_headers, get_user, db_session):
    user = get_user("user@example.com")

    response = client.put(
        f"/api/admin/users/{user.id}/role",
        headers={**admin_headers, "User-Agent": "pytest-admin"},
        json={"role": "admin"},
    )
    assert response.status_code == 200, response.text
    assert get_user("user@example.com").role == "admin"

    [entry] = _logs(db_session)
    assert entry.admin_id == get_user("admin@example.com").id
    assert entry.action == "UPDATE_ROLE"
    assert entry.resource == "User"
    assert entry.resource_id == user.id
    assert entry.details == {"old_role": "user", "new_role": "admin"}
    assert entry.user_agent == "pytest-admin"


def test_invalid_role_is_rejected(client, admin_headers, auth_headers, get_user):
    user = get_user("user@example.com")
    response = client.put(f"/api/admin/users/{user.id}/role", headers=admin_headers, json={"role": "owner"})
    assert response.status_code == 400


def test_delete_user_cascades_and_is_audited(client, admin_headers, auth_headers, get_user, db_session):
    _upload(client, auth_headers)
    client.post("/api/api-keys", headers=auth_headers, json={"name": "ci"})
    user = get_user("user@example.com")

    response = client.delete(f"/api/admin/users/{user.id}", headers=admin_headers)
    assert response.status_code == 200, response.text

    assert get_user("user@example.com") is None
    assert db_session.scalar(select(func.count(Upload.id))) == 0
    assert db_session.scalar(select(func.count(ApiKey.id))) == 0

    [entry] = _logs(db_session)
    assert entry.action == "DELETE"
    assert entry.resource == "User"
    assert entry.resource_id == user.id
    assert entry.details["uploads_deleted"] == 1
    assert entry.details["api_keys_deleted"] == 1


def test_admin_upload_delete_releases_owner_quota(client, admin_headers, auth_headers, get_user, db_session):
    upload_id = _upload(client, auth_headers).json()["data"]["id"]

    response = client.delete(f"/api/admin/uploads/{upload_id}", headers=admin_headers)
    assert response.status_code == 200
    assert get_user("user@example.com").uploads_this_month == 0

    [entry] = _logs(db_session)
    assert entry.resource == "Upload"
    assert entry.details["user"] == "user@example.com"


def test_stats_and_listings(client, admin_headers, auth_headers):
    _upload(client, auth_headers)

    stats = client.get("/api/admin/stats", headers=admin_headers)
    assert stats.status_code == 200, stats.text
    data = stats.json()["data"]
    assert data["stats"]["users"]["total"] == 2
    assert data["stats"]["uploads"]["today"] == 1
    assert data["charts"]["uploads_by_type"] == [{"file_type": "image", "count": 1}]
    assert data["recent"]["uploads"][0]["owner"]["email"] == "user@example.com"

    users = client.get("/api/admin/users", headers=admin_headers).json()
    assert users["pagination"]["total"] == 2

    uploads = client.get("/api/admin/uploads", headers=admin_headers).json()
    assert uploads["data"][0]["owner"]["email"] == "user@example.com"


def test_logs_listing_shows_acting_admin(client, admin_headers, auth_headers, get_user):
    user = get_user("user@example.com")
    client.put(f"/api/admin/users/{user.id}/role", headers=admin_headers, json={"role": "admin"})

    logs = client.get("/api/admin/logs", headers=admin_headers).json()
    assert logs["pagination"]["total"] == 1
    assert logs["data"][0]["admin"]["email"] == "admin@example.com"
    assert logs["data"][0]["action"] == "UPDATE_ROLE"


def test_audit_failure_keeps_mutation_and_reports_error(
    client, admin_headers, auth_headers, get_user, database, db_session
):
    user = get_user("user@example.com")
    db_session.commit()
    AdminLog.__table__.drop(database.engine)

    response = client.put(f"/api/admin/users/{user.id}/role", headers=admin_headers, json={"role": "admin"})
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Action completed but the audit log entry could not be written",
    }
    assert get_user("user@example.com").role == "admin"
