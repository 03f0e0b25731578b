import io
from urllib import error
from urllib.parse import urlparse

import pytest
from fastapi.testclient import TestClient

from backend.app.api import create_app
from backend.app.config import Settings
from data.gateway import InMemoryGateway
from game.session_store import SessionStore
from game.timer import ManualScheduler


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def gateway():
    return InMemoryGateway(seed=7)


@pytest.fixture()
def store(gateway, scheduler):
    return SessionStore(gateway, scheduler=scheduler)


@pytest.fixture()
def api_settings(tmp_path):
    return Settings(db_path=tmp_path / "sessions.db", max_page_size=100)


@pytest.fixture()
def client(api_settings):
    return TestClient(create_app(api_settings))


class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture()
def urlopen_to_client(monkeypatch, client):
    """Route RemoteGateway's urllib calls into the in-process API."""

    def fake_urlopen(req, timeout=None):
        parsed = urlparse(req.full_url)
        path = parsed.path + (f"?{parsed.query}" if parsed.query else "")
        headers = {"Content-Type": "application/json"} if req.data else {}
        resp = client.request(req.get_method(), path, content=req.data, headers=headers)
        if resp.status_code >= 400:
            raise error.HTTPError(req.full_url, resp.status_code, "error", hdrs=None, fp=io.BytesIO(resp.content))
        return FakeResponse(resp.status_code, resp.content)

    monkeypatch.setattr("data.gateway_client.request.urlopen", fake_urlopen)
    return fake_urlopen

