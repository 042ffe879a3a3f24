"""Telemetry relay FastAPI application entry point."""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from backend.routers import relay
from backend.services.honeycomb import close_client

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    try:
        from observability.tracing import setup_tracing
        setup_tracing(service_name=os.environ.get("OTEL_SERVICE_NAME", "telemetry-relay"))
        logger.info("OTEL tracing configured")
    except Exception as e:
        logger.warning(f"OTEL tracing not configured: {e}")

    yield

    await close_client()
    try:
        from observability.tracing import shutdown_tracing
        shutdown_tracing()
    except Exception as e:
        logger.warning(f"OTEL tracing shutdown failed: {e}")
    logger.info("Telemetry relay shutting down")


app = FastAPI(
    title="Frontend Telemetry Relay",
    description=(
        "Receives wide events from the page tracker and forwards them to "
        "Honeycomb, keeping the write key server-side."
    ),
    version="0.1.0",
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS: allow the drawing app dev server and any configured FRONTEND_URL
allowed_origins = [
    "http://localhost:3000",
    os.environ.get("FRONTEND_URL", "http://localhost:3000"),
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(relay.router)


@app.get("/health")
async def health() -> dict:
    """Health check for the platform's readiness probe."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict:
    return {
        "service": "telemetry-relay",
        "relay": relay.RELAY_PATH,
        "health": "/health",
    }
