from fastapi.testclient import TestClient

from fivem_monitor.main import create_app
from fivem_monitor.middleware.rate_limit import RateLimiter
from fivem_monitor.services.fetcher import SnapshotFetcher

from conftest import FakeSession


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_bucket_exhausts_and_refills():
    clock = Clock()
    limiter = RateLimiter(limit=3, window=60, clock=clock)

    assert [limiter.check("1.1.1.1")[0] for _ in range(4)] == [True, True, True, False]
    allowed, retry_after = limiter.check("1.1.1.1")
    assert not allowed
    assert retry_after > 0

    # other clients have their own bucket
    assert limiter.check("2.2.2.2")[0]

    clock.now += 20  # one token per 20s
    assert limiter.check("1.1.1.1")[0]
    assert not limiter.check("1.1.1.1")[0]


def test_idle_buckets_are_evicted():
    clock = Clock()
    limiter = RateLimiter(limit=1, window=60, clock=clock)
    limiter.check("1.1.1.1")
    clock.now += 61
    limiter.check("2.2.2.2")
    assert list(limiter._buckets) == ["2.2.2.2"]


def test_middleware_returns_429(settings):
    settings = settings.model_copy(update={"rate_limit_requests": 2})
    app = create_app(settings, fetcher=SnapshotFetcher(settings, session=FakeSession({})))

    with TestClient(app) as client:
        headers = {"X-Forwarded-For": "9.9.9.9, 10.0.0.1"}
        assert client.get("/api/status", headers=headers).status_code == 200
        assert client.get("/api/status", headers=headers).status_code == 200
        resp = client.get("/api/status", headers=headers)
        assert resp.status_code == 429
        assert resp.json()["success"] is False
        assert "Retry-After" in resp.headers
        assert resp.headers["X-Content-Type-Options"] == "nosniff"

        assert client.get("/api/status", headers={"X-Forwarded-For": "8.8.8.8"}).status_code == 200
