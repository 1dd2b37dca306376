from datetime import datetime, timezone

import pytest
import requests
from fastapi.testclient import TestClient

from fivem_monitor.config import Settings
from fivem_monitor.main import create_app
from fivem_monitor.services.fetcher import SnapshotFetcher

T0 = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, body=None, status_code=200, invalid_json=False):
        self._body = body
        self.status_code = status_code
        self._invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._invalid_json:
            raise requests.JSONDecodeError("Expecting value", "<html>", 0)
        return self._body


class FakeSession:
    """Stands in for ``requests.Session``; maps ``players``/``info``/``dynamic`` to a response or exception."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.closed = False

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        name = url.rsplit("/", 1)[-1].removesuffix(".json")
        result = self.routes.get(name, requests.ConnectionError("connection refused"))
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        fivem_server="127.0.0.1:30120",
        polling_enabled=False,
        log_file="",
        public_dir=str(tmp_path / "public"),
    )


@pytest.fixture
def fake_session():
    return FakeSession({})


@pytest.fixture
def app(settings, fake_session):
    return create_app(settings, fetcher=SnapshotFetcher(settings, session=fake_session))


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
