from app.main import RateLimiter


def test_limit_applies_per_client_within_window():
    limiter = RateLimiter(limit_per_minute=2)

    assert limiter.hit("10.0.0.1", now=1000.0)
    assert limiter.hit("10.0.0.1", now=1010.0)
    assert not limiter.hit("10.0.0.1", now=1020.0)
    assert limiter.hit("10.0.0.2", now=1020.0)
    assert limiter.hit("10.0.0.1", now=1071.0)


def test_idle_clients_are_forgotten():
    limiter = RateLimiter(limit_per_minute=5)
    limiter.hit("10.0.0.1", now=1000.0)
    limiter.hit("10.0.0.2", now=1030.0)

    limiter.hit("10.0.0.3", now=1100.0)

    assert "10.0.0.1" not in limiter._hits
    assert "10.0.0.2" not in limiter._hits
    assert "10.0.0.3" in limiter._hits


def test_limited_requests_get_enveloped_429(database):
    from fastapi.testclient import TestClient

    from app.core.config import get_settings
    from app.main import create_app

    settings = get_settings().model_copy(update={"rate_limit_per_minute": 1})
    app = create_app(settings=settings, database=database)
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        response = client.get("/health")
    assert response.status_code == 429
    assert response.json() == {"success": False, "error": "Too many requests, please try again later"}
