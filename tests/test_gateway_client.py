import asyncio
import io
import json
from urllib import error

import pytest

from config.settings import GatewayConfig, load_gateway_config
from data.gateway_client import RemoteGateway
from data.models import MODE_PLAYING, MODE_RESULT, TIMEOUT, GameSettings
from game.errors import (
    ConfigurationError,
    SessionNotFoundError,
    StaleSubmissionError,
    TransportError,
)
from game.session_store import SessionStore


BASE = "http://gateway.test"


class StubResponse:
    def __init__(self, body, status=200):
        self.status = status
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def json_response(payload):
    return StubResponse(json.dumps(payload).encode("utf-8"))


def patch_urlopen(monkeypatch, fake):
    monkeypatch.setattr("data.gateway_client.request.urlopen", fake)


def http_error(status, body=b'{"detail":"boom"}'):
    def fake(req, timeout=None):
        raise error.HTTPError(req.full_url, status, "error", hdrs=None, fp=io.BytesIO(body))

    return fake


@pytest.mark.parametrize(
    "status, expected",
    [
        (409, StaleSubmissionError),
        (404, SessionNotFoundError),
        (400, ConfigurationError),
        (422, ConfigurationError),
        (500, TransportError),
        (503, TransportError),
    ],
)
def test_http_errors_are_mapped(monkeypatch, status, expected):
    patch_urlopen(monkeypatch, http_error(status))
    gateway = RemoteGateway(BASE)
    with pytest.raises(expected):
        asyncio.run(gateway.submit_answer(1, 0, "ROCK", 10))


def test_server_error_keeps_status_as_reason(monkeypatch):
    patch_urlopen(monkeypatch, http_error(502, b"not json"))
    gateway = RemoteGateway(BASE)
    with pytest.raises(TransportError) as info:
        asyncio.run(gateway.get_next_problem(1))
    assert info.value.reason == "http_502"
    assert gateway.last_error == "http_502"


def test_connection_failure(monkeypatch):
    def refuse(req, timeout=None):
        raise error.URLError("connection refused")

    patch_urlopen(monkeypatch, refuse)
    gateway = RemoteGateway(BASE)
    with pytest.raises(TransportError) as info:
        asyncio.run(gateway.start_game("RPS", GameSettings(round_count=1)))
    assert info.value.reason == "connection_error"


def test_timeout_is_connection_error(monkeypatch):
    def slow(req, timeout=None):
        raise TimeoutError("timed out")

    patch_urlopen(monkeypatch, slow)
    with pytest.raises(TransportError) as info:
        asyncio.run(RemoteGateway(BASE).get_session_stats(1))
    assert info.value.reason == "connection_error"


@pytest.mark.parametrize("payload", [{"ok": False}, {"problem": None}, ["ok"]])
def test_unexpected_payload_is_invalid_response(monkeypatch, payload):
    patch_urlopen(monkeypatch, lambda req, timeout=None: json_response(payload))
    with pytest.raises(TransportError) as info:
        asyncio.run(RemoteGateway(BASE).get_next_problem(1))
    assert info.value.reason == "invalid_server_response"


def test_garbage_body_is_invalid_response(monkeypatch):
    patch_urlopen(monkeypatch, lambda req, timeout=None: StubResponse(b"<html>"))
    with pytest.raises(TransportError) as info:
        asyncio.run(RemoteGateway(BASE).get_next_problem(1))
    assert info.value.reason == "invalid_server_response"


def test_request_shape(monkeypatch):
    seen = {}

    def capture(req, timeout=None):
        seen["method"] = req.get_method()
        seen["url"] = req.full_url
        seen["timeout"] = timeout
        return json_response({"ok": True, "sessions": [], "total_count": 0})

    patch_urlopen(monkeypatch, capture)
    page = asyncio.run(RemoteGateway(BASE + "/", timeout_sec=4).get_paginated_sessions_with_results(3, 20))
    assert page.total_count == 0
    assert seen == {"method": "GET", "url": f"{BASE}/v1/sessions?page=3&limit=20", "timeout": 4}


def test_endpoint_validation():
    assert RemoteGateway.is_valid_endpoint("https://example.org")
    assert not RemoteGateway.is_valid_endpoint("example.org")
    assert not RemoteGateway.is_valid_endpoint("")
    gateway = RemoteGateway("ftp://nowhere")
    assert asyncio.run(gateway.check_connection()) is False
    assert gateway.last_error == "invalid_url"


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("COGTRIALS_GATEWAY_URL", BASE)
    monkeypatch.setenv("COGTRIALS_GATEWAY_TIMEOUT", "7")
    config = load_gateway_config()
    assert config.is_remote
    gateway = RemoteGateway.from_config(config)
    assert gateway.base_url == BASE
    assert gateway.timeout_sec == 7
    assert not GatewayConfig().is_remote


# ---- against the in-process API --------------------------------------------

def test_health_check_through_api(urlopen_to_client):
    assert asyncio.run(RemoteGateway(BASE).check_connection()) is True


def test_store_plays_through_remote_gateway(urlopen_to_client, scheduler):
    store = SessionStore(RemoteGateway(BASE), scheduler=scheduler)

    async def scenario():
        assert await store.start_game("RPS", GameSettings(round_count=3, time_limit_ms=1000))
        await store.submit_answer("ROCK", 300)
        scheduler.advance(1000)
        await store.wait_idle()
        assert store.game_mode == MODE_PLAYING
        await store.submit_answer("PAPER", 700)
        return await store.gateway.get_session_stats(store.session_id)

    stats = asyncio.run(scenario())
    assert store.game_mode == MODE_RESULT
    assert [o.trial_index for o in store.results] == [0, 1, 2]
    assert store.results[1].player_choice == TIMEOUT
    assert stats.overall_accuracy == store.metrics.overall_accuracy
    assert stats.average_response_time_ms == pytest.approx((300 + 1000 + 700) / 3)


def test_remote_invalid_settings_surface_as_configuration_error(urlopen_to_client, scheduler):
    store = SessionStore(RemoteGateway(BASE), scheduler=scheduler)
    assert asyncio.run(store.start_game("RPS", GameSettings(round_count=0))) is False
    assert isinstance(store.error, ConfigurationError)
    assert str(store.error).startswith("invalid_settings:")


def test_remote_pagination(urlopen_to_client):
    gateway = RemoteGateway(BASE)

    async def scenario():
        for _ in range(12):
            await gateway.start_game("N_BACK", GameSettings(round_count=2))
        past_end = await gateway.get_paginated_sessions_with_results(5, 10)
        second = await gateway.get_paginated_sessions_with_results(2, 10)
        return past_end, second

    past_end, second = asyncio.run(scenario())
    assert past_end.sessions == ()
    assert past_end.total_count == 12
    assert [s.session_id for s in second.sessions] == [2, 1]
    assert second.sessions[0].game_code == "N_BACK"

    with pytest.raises(ConfigurationError):
        asyncio.run(gateway.get_paginated_sessions_with_results(0, 10))


def test_remote_stale_submission(urlopen_to_client):
    gateway = RemoteGateway(BASE)

    async def scenario():
        started = await gateway.start_game("RPS", GameSettings(round_count=2))
        await gateway.submit_answer(started.session_id, 5, "ROCK", 10)

    with pytest.raises(StaleSubmissionError):
        asyncio.run(scenario())
