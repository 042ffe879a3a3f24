"""
Shared test configuration for the relay unit tests.

Relay settings and the outbound client are lazily-created module singletons;
reset them around every test so env changes made with monkeypatch apply.
"""
import pytest

from backend.services import honeycomb


@pytest.fixture(autouse=True)
def reset_honeycomb_singletons():
    honeycomb._settings = None
    honeycomb._client = None
    yield
    honeycomb._settings = None
    honeycomb._client = None


@pytest.fixture
def relay_env(monkeypatch):
    """Configure the relay with a fake write key and dataset."""
    monkeypatch.setenv("HONEYCOMB_API_KEY", "hc-test-write-key")
    monkeypatch.setenv("HONEYCOMB_DATASET_NAME", "drawing-app")
    monkeypatch.delenv("HONEYCOMB_API_URL", raising=False)
