"""
Honeycomb events API client for the relay.

Settings come from the environment on first use (cold start) and are cached
for the life of the process, the same way the write key would be captured
by a serverless function container.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.honeycomb.io"

_settings: Optional["RelaySettings"] = None
_client: Optional[httpx.AsyncClient] = None


class RelayConfigError(RuntimeError):
    """Raised when the write key or dataset name is not configured."""


@dataclass(frozen=True)
class RelaySettings:
    api_key: str
    dataset: str
    api_url: str = DEFAULT_API_URL


def load_relay_settings() -> RelaySettings:
    """Read relay settings from the environment. Both the key and dataset are required."""
    api_key = os.environ.get("HONEYCOMB_API_KEY", "")
    dataset = os.environ.get("HONEYCOMB_DATASET_NAME", "")
    missing = [
        name for name, value in (
            ("HONEYCOMB_API_KEY", api_key),
            ("HONEYCOMB_DATASET_NAME", dataset),
        )
        if not value
    ]
    if missing:
        raise RelayConfigError(f"Missing relay settings: {', '.join(missing)}")
    return RelaySettings(
        api_key=api_key,
        dataset=dataset,
        api_url=os.environ.get("HONEYCOMB_API_URL", DEFAULT_API_URL),
    )


def get_relay_settings() -> RelaySettings:
    global _settings
    if _settings is None:
        _settings = load_relay_settings()
    return _settings


def get_http_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=10.0)
    return _client


async def close_client() -> None:
    """Close the shared client. Call from FastAPI shutdown."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def events_endpoint(settings: RelaySettings) -> str:
    """Single-event endpoint for the configured dataset."""
    return f"{settings.api_url.rstrip('/')}/1/events/{quote(settings.dataset, safe='')}"


async def forward_event(payload: dict, settings: RelaySettings) -> httpx.Response:
    """
    POST one event to Honeycomb.

    Raises httpx.HTTPError on network failure or a non-2xx response; the
    route turns that into a structured error body.
    """
    client = get_http_client()
    response = await client.post(
        events_endpoint(settings),
        json=payload,
        headers={"X-Honeycomb-Team": settings.api_key},
    )
    response.raise_for_status()
    logger.debug(f"Forwarded event to dataset {settings.dataset}: {response.status_code}")
    return response
