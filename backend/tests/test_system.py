from fastapi.testclient import TestClient
from quizarena.config import settings
from quizarena.main import app
from quizarena.services.cache import get_cache, set_cache

client = TestClient(app)

class ClosingCache:
    """Cache that only records whether it was shut down."""

    def __init__(self):
        self.closed = False

    async def get(self, key):
        return None

    async def version(self, namespace):
        return None

    async def set(self, key, value, ttl, *, version=None):
        return None

    async def invalidate(self, namespace):
        return None

    async def clear(self):
        return None

    async def close(self):
        self.closed = True

def test_health_ok():
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert "request_id" in data

def test_version_ok():
    r = client.get("/version")
    assert r.status_code == 200
    data = r.json()
    assert "version" in data and "git_sha" in data
    assert data["name"] == settings.app_name
    assert data["cache_backend"] == settings.cache_backend
    assert "build" not in data

def test_request_id_echoed():
    r = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"
    assert r.json()["request_id"] == "abc-123"

def test_shutdown_closes_cache():
    cache = ClosingCache()
    set_cache(cache)
    try:
        with TestClient(app) as c:
            assert c.get("/health").status_code == 200
            assert not cache.closed
        assert cache.closed
        # a fresh instance is built on next use
        assert get_cache() is not cache
    finally:
        set_cache(None)
