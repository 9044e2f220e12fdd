"""
Tests for the per-client fixed-window rate limiter.
"""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakeRedis, auth_headers
from core.config import settings
from core.rate_limit import RateLimitMiddleware


@pytest.fixture
def fake_redis(monkeypatch):
    import core.rate_limit as rate_limit_mod
    fake = FakeRedis()
    monkeypatch.setattr(rate_limit_mod, "get_redis_client", lambda: fake)
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    return fake


def _client(default_limit=2):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, default_limit=default_limit, window=60)

    @app.get("/v1/things")
    def things():
        return {"ok": True}

    @app.post("/v1/sessions/import")
    def import_sessions():
        return {"ok": True}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return TestClient(app)


class TestRateLimitMiddleware:
    def test_blocks_after_limit(self, fake_redis):
        client = _client(default_limit=2)

        first = client.get("/v1/things")
        assert first.status_code == 200
        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert client.get("/v1/things").status_code == 200

        blocked = client.get("/v1/things")
        assert blocked.status_code == 429
        assert blocked.json()["detail"] == "Rate limit exceeded"
        assert "Retry-After" in blocked.headers

    def test_endpoint_specific_limit(self, fake_redis):
        client = _client(default_limit=100)
        for _ in range(5):
            assert client.post("/v1/sessions/import").status_code == 200
        assert client.post("/v1/sessions/import").status_code == 429

    def test_health_is_exempt(self, fake_redis):
        client = _client(default_limit=1)
        for _ in range(3):
            assert client.get("/health").status_code == 200
        assert fake_redis.store == {}

    def test_authenticated_clients_counted_separately(self, fake_redis, make_user):
        client = _client(default_limit=1)
        alice, bob = make_user(), make_user()

        assert client.get("/v1/things", headers=auth_headers(alice)).status_code == 200
        assert client.get("/v1/things", headers=auth_headers(bob)).status_code == 200
        assert client.get("/v1/things", headers=auth_headers(alice)).status_code == 429
        assert any(key.startswith(f"rate_limit:user:{alice.id}") for key in fake_redis.store)

    def test_fails_open_without_redis(self, monkeypatch):
        import core.rate_limit as rate_limit_mod
        monkeypatch.setattr(rate_limit_mod, "get_redis_client", lambda: None)
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
        client = _client(default_limit=1)

        for _ in range(3):
            assert client.get("/v1/things").status_code == 200
