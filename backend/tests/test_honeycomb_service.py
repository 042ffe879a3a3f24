"""Unit tests for the Honeycomb client; outbound calls go to httpx.MockTransport."""
import json

import httpx
import pytest

from backend.services import honeycomb
from backend.services.honeycomb import (
    RelayConfigError,
    RelaySettings,
    events_endpoint,
    forward_event,
    get_relay_settings,
    load_relay_settings,
)


def _install_mock_client(handler) -> list[httpx.Request]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    honeycomb._client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return seen


def test_load_settings_from_env(relay_env):
    settings = load_relay_settings()
    assert settings.api_key == "hc-test-write-key"
    assert settings.dataset == "drawing-app"
    assert settings.api_url == "https://api.honeycomb.io"


def test_load_settings_reports_every_missing_variable(monkeypatch):
    monkeypatch.delenv("HONEYCOMB_API_KEY", raising=False)
    monkeypatch.delenv("HONEYCOMB_DATASET_NAME", raising=False)
    with pytest.raises(RelayConfigError) as exc:
        load_relay_settings()
    assert "HONEYCOMB_API_KEY" in str(exc.value)
    assert "HONEYCOMB_DATASET_NAME" in str(exc.value)


def test_settings_read_once_at_cold_start(relay_env, monkeypatch):
    first = get_relay_settings()
    monkeypatch.setenv("HONEYCOMB_DATASET_NAME", "changed-later")
    assert get_relay_settings() is first
    assert get_relay_settings().dataset == "drawing-app"


def test_events_endpoint_quotes_dataset():
    settings = RelaySettings(api_key="k", dataset="my dataset/v2")
    assert events_endpoint(settings) == "https://api.honeycomb.io/1/events/my%20dataset%2Fv2"


@pytest.mark.asyncio
async def test_forward_event_posts_json_with_write_key():
    seen = _install_mock_client(lambda request: httpx.Response(200, json={}))
    settings = RelaySettings(api_key="hc-key", dataset="drawing-app")

    await forward_event({"type": "page-load", "UserIP": "127.0.0.1"}, settings)

    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.honeycomb.io/1/events/drawing-app"
    assert request.headers["X-Honeycomb-Team"] == "hc-key"
    assert json.loads(request.content) == {"type": "page-load", "UserIP": "127.0.0.1"}
    await honeycomb.close_client()


@pytest.mark.asyncio
async def test_forward_event_raises_on_rejected_write_key():
    _install_mock_client(lambda request: httpx.Response(401, json={"error": "unknown API key"}))
    settings = RelaySettings(api_key="bad", dataset="drawing-app")

    with pytest.raises(httpx.HTTPStatusError):
        await forward_event({"type": "page-load"}, settings)
    await honeycomb.close_client()


@pytest.mark.asyncio
async def test_close_client_resets_singleton():
    client = honeycomb.get_http_client()
    assert honeycomb.get_http_client() is client
    await honeycomb.close_client()
    assert honeycomb._client is None
