"""
Telemetry relay: forwards browser wide events to Honeycomb.

POST /functions/honeycomb
  - body is any JSON object produced by the page tracker
  - server adds UserIP and, for signed-in users, IdentityUser_* fields
  - forwarded as one event to the configured Honeycomb dataset

The browser never sees the Honeycomb write key; it only talks to this route.
"""
import json
import logging

import httpx
from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from slowapi import Limiter
from slowapi.util import get_remote_address

from backend.services.honeycomb import RelayConfigError, forward_event, get_relay_settings
from backend.services.identity import identity_fields, read_identity

RELAY_PATH = "/functions/honeycomb"
RELAY_RATE_LIMIT = "120/minute"
LOOPBACK_IP = "127.0.0.1"

router = APIRouter(tags=["relay"])
logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)
tracer = trace.get_tracer("telemetry-relay")


def client_ip(request: Request) -> str:
    """Originating client address from the platform's forwarding headers."""
    ip = request.headers.get("x-nf-client-connection-ip")
    if ip:
        return ip.strip()
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return LOOPBACK_IP


def _reject_constant(name: str):
    # json.loads takes NaN and Infinity; the outbound encoder does not
    raise ValueError(f"non-finite number {name} is not allowed")


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": detail})


@router.post(RELAY_PATH)
@limiter.limit(RELAY_RATE_LIMIT)
async def relay_event(
    request: Request,
    authorization: str | None = Header(None),
) -> Response:
    """Augment a client event with server-sourced fields and forward it."""
    raw = await request.body()
    try:
        received = json.loads(raw, parse_constant=_reject_constant)
    except ValueError as e:
        return _error(400, "invalid_json", f"Request body is not valid JSON: {e}")
    if not isinstance(received, dict):
        return _error(400, "invalid_body", "Request body must be a JSON object")

    try:
        settings = get_relay_settings()
    except RelayConfigError as e:
        logger.error(f"Relay not configured: {e}")
        return _error(503, "relay_not_configured", str(e))

    # client-sent fields first so server-sourced fields win on collision
    data = {**received, "UserIP": client_ip(request)}
    user = read_identity(authorization)
    if user is not None:
        data.update(identity_fields(user))

    with tracer.start_as_current_span("relay.forward") as span:
        span.set_attribute("relay.dataset", settings.dataset)
        span.set_attribute("relay.field_count", len(data))
        span.set_attribute("relay.authenticated", user is not None)
        action_name = received.get("actionName")
        if isinstance(action_name, str):
            span.set_attribute("relay.action_name", action_name)
        try:
            await forward_event(data, settings)
        except httpx.HTTPError as e:
            logger.error(f"Relay forward to Honeycomb failed: {e!r}")
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            return _error(502, "upstream_error", str(e) or e.__class__.__name__)

    return PlainTextResponse("POST OK")


@router.api_route(
    RELAY_PATH,
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def reject_non_post() -> PlainTextResponse:
    return PlainTextResponse(
        "unrecognized HTTP method, must use POST to this endpoint",
        status_code=405,
        headers={"Allow": "POST"},
    )
