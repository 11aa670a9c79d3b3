"""FastAPI application for the WebRTC signaling relay."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .core.config import settings
from .routers import signaling as signaling_router
from .routers import transcription as transcription_router
from .services.assemblyai import TranscriptionConfigError, TranscriptionUpstreamError
from .services.registry import ConnectionRegistry
from .services.signaling import SignalingRelay

logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger."""

    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Signaling relay starting on port %s (env=%s)", settings.port, settings.app_env)
    logger.info("CORS enabled for: %s", ", ".join(settings.cors_allow_origins) or "none")
    logger.info(
        "AssemblyAI integration: %s",
        "enabled" if settings.assemblyai_api_key.strip() else "disabled (API key missing)",
    )
    if settings.room_capacity:
        logger.info("Room capacity limited to %s participants", settings.room_capacity)
    yield
    logger.info("Signaling relay stopped with %d open connection(s)", app.state.relay.connection_count)


configure_logging()

app = FastAPI(title="Signal Relay API", version="0.1.0", lifespan=lifespan)
app.state.relay = SignalingRelay(ConnectionRegistry(), room_capacity=settings.room_capacity)

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

app.include_router(signaling_router.router, tags=["signaling"])
app.include_router(transcription_router.router, prefix="/api", tags=["transcription"])


@app.exception_handler(TranscriptionConfigError)
async def transcription_config_error(_request: Request, exc: TranscriptionConfigError) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "Server configuration error", "message": str(exc)},
    )


@app.exception_handler(TranscriptionUpstreamError)
async def transcription_upstream_error(_request: Request, exc: TranscriptionUpstreamError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "Failed to generate token", "details": exc.details},
    )


def _connection_count(request: Request) -> int:
    return request.app.state.relay.connection_count


@app.get("/", tags=["meta"])
async def index(request: Request) -> dict[str, Any]:
    """Report that the relay is up."""

    return {
        "status": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "connections": _connection_count(request),
    }


@app.head("/", tags=["meta"])
async def index_head() -> Response:
    """Fast health checks issue HEAD /; answer with 200 to avoid noisy 405s."""

    return Response(status_code=200)


@app.get("/health", tags=["meta"])
@app.get("/api/health", tags=["meta"])
async def health(request: Request) -> dict[str, Any]:
    """Liveness probe with uptime and open connection count."""

    return {
        "status": "healthy",
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "connections": _connection_count(request),
    }


@app.head("/health", tags=["meta"])
@app.head("/api/health", tags=["meta"])
async def health_head() -> Response:
    """Allow HEAD for uptime monitors that only need the status code."""

    return Response(status_code=200)
