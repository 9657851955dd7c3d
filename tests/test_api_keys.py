from datetime import timedelta

from sqlalchemy import select, update

from app.models.api_key import MASKED_KEY, ApiKey
from app.models.common import utcnow
from app.models.upload import Upload


def _create_key(client, headers, name="ci"):
    return client.post("/api/api-keys", headers=headers, json={"name": name})


def _api_upload(client, secret, name="shot.png"):
    return client.post(
        "/api/v1/upload-image",
        headers={"X-API-Key": secret},
        files={"file": (name, b"\x89PNG\r\n\x1a\nabc", "image/png")},
    )


def test_create_key_returns_full_secret(client, auth_headers):
    response = _create_key(client, auth_headers, name="deploy bot")
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["name"] == "deploy bot"
    assert len(data["key"]) == 64

    listing = client.get("/api/api-keys", headers=auth_headers).json()
    assert listing["count"] == 1
    assert listing["data"][0]["key"] == data["key"]


def test_sixth_key_is_rejected(client, auth_headers, db_session):
    for index in range(5):
        assert _create_key(client, auth_headers, name=f"key-{index}").status_code == 201

    response = _create_key(client, auth_headers, name="one-too-many")
    assert response.status_code == 400
    assert response.json()["error"] == "Maximum API key limit (5) reached"
    db_session.expire_all()
    assert len(db_session.scalars(select(ApiKey)).all()) == 5


def test_key_name_is_required(client, auth_headers):
    assert _create_key(client, auth_headers, name="   ").status_code == 400


def test_toggle_affects_only_the_target_key(client, auth_headers):
    first = _create_key(client, auth_headers, name="first").json()["data"]
    second = _create_key(client, auth_headers, name="second").json()["data"]

    response = client.put(f"/api/api-keys/{first['id']}/toggle", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False
    assert response.json()["data"]["key"] == MASKED_KEY

    assert _api_upload(client, first["key"]).status_code == 401
    assert _api_upload(client, second["key"]).status_code == 201

    client.put(f"/api/api-keys/{first['id']}/toggle", headers=auth_headers)
    assert _api_upload(client, first["key"]).status_code == 201


def test_expired_key_is_rejected(client, auth_headers, db_session):
    created = _create_key(client, auth_headers).json()["data"]
    db_session.execute(
        update(ApiKey).where(ApiKey.id == created["id"]).values(expires_at=utcnow() - timedelta(seconds=1))
    )
    db_session.commit()

    response = _api_upload(client, created["key"])
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired API key"


def test_missing_or_unknown_key(client):
    assert client.get("/api/api-keys/usage").status_code == 401
    assert client.get("/api/api-keys/usage", params={"apiKey": "f" * 64}).status_code == 401


def test_api_upload_stamps_key_and_counts_usage(client, auth_headers, db_session, get_user):
    created = _create_key(client, auth_headers).json()["data"]

    response = _api_upload(client, created["key"])
    assert response.status_code == 201, response.text
    assert response.json()["data"]["upload_method"] == "api"

    db_session.expire_all()
    upload = db_session.scalar(select(Upload))
    assert upload.api_key_id == created["id"]
    api_key = db_session.get(ApiKey, created["id"])
    assert api_key.usage_count == 1
    assert api_key.last_used_at is not None
    assert get_user("user@example.com").uploads_this_month == 1


def test_usage_via_query_parameter(client, auth_headers):
    created = _create_key(client, auth_headers).json()["data"]
    _api_upload(client, created["key"])

    response = client.get("/api/api-keys/usage", params={"apiKey": created["key"]})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total_uploads"] == 1
    assert data["uploads_this_month"] == 1
    assert data["upload_limit"] == 3
    assert data["usage_percentage"] == 33
    # The usage lookup itself authenticates with the key.
    assert data["usage_count"] == 2


def test_stats_summarise_keys(client, auth_headers):
    first = _create_key(client, auth_headers, name="first").json()["data"]
    _create_key(client, auth_headers, name="second")
    client.put(f"/api/api-keys/{first['id']}/toggle", headers=auth_headers)

    stats = client.get("/api/api-keys/stats", headers=auth_headers).json()["data"]
    assert stats["total_api_keys"] == 2
    assert stats["active_api_keys"] == 1
    assert stats["total_api_uploads"] == 0


def test_delete_key_keeps_uploads(client, auth_headers, db_session):
    created = _create_key(client, auth_headers).json()["data"]
    _api_upload(client, created["key"])

    response = client.delete(f"/api/api-keys/{created['id']}", headers=auth_headers)
    assert response.status_code == 200

    db_session.expire_all()
    assert db_session.get(ApiKey, created["id"]) is None
    upload = db_session.scalar(select(Upload))
    assert upload is not None
    assert upload.api_key_id is None


def test_cannot_toggle_another_users_key(client, auth_headers, signup):
    created = _create_key(client, auth_headers).json()["data"]
    other_headers = signup(email="other@example.com")

    assert client.put(f"/api/api-keys/{created['id']}/toggle", headers=other_headers).status_code == 404
    assert client.delete(f"/api/api-keys/{created['id']}", headers=other_headers).status_code == 404
