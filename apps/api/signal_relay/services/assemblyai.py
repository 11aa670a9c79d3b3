"""AssemblyAI temporary streaming token exchange."""
from __future__ import annotations

import logging
import math
from typing import Any

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)

TOKEN_TTL_DEFAULT = 60
TOKEN_TTL_MIN = 1
TOKEN_TTL_MAX = 600

MAX_SESSION_DEFAULT = 10800
MAX_SESSION_MIN = 60
MAX_SESSION_MAX = 10800


class TranscriptionConfigError(RuntimeError):
    """Raised when the server has no AssemblyAI credential to exchange."""


class TranscriptionUpstreamError(RuntimeError):
    """Raised when AssemblyAI refuses or fails the token request."""

    def __init__(self, status_code: int, details: str) -> None:
        super().__init__(f"AssemblyAI token request failed with {status_code}")
        self.status_code = status_code
        self.details = details


def clamp_param(raw: object, *, default: int, minimum: int, maximum: int) -> int | float:
    """Coerce a loosely typed request value into ``[minimum, maximum]``.

    Missing, non-numeric, zero, and NaN values use ``default``. Infinities clamp to
    the nearest bound. Fractional values are kept; whole values come back as ``int``.
    """

    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        value = 0.0
    if math.isnan(value) or value == 0:
        value = float(default)
    value = min(maximum, max(minimum, value))
    return int(value) if float(value).is_integer() else value


def _build_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.assemblyai_timeout_seconds)


async def issue_streaming_token(
    expires_in_seconds: object = None,
    max_session_duration_seconds: object = None,
) -> dict[str, Any]:
    """Exchange the server-held API key for a short-lived streaming token."""

    api_key = settings.assemblyai_api_key.strip()
    if not api_key:
        logger.error("ASSEMBLYAI_API_KEY not set; cannot issue streaming token")
        raise TranscriptionConfigError("AssemblyAI API key not configured")

    params = {
        "expires_in_seconds": str(
            clamp_param(expires_in_seconds, default=TOKEN_TTL_DEFAULT, minimum=TOKEN_TTL_MIN, maximum=TOKEN_TTL_MAX)
        ),
        "max_session_duration_seconds": str(
            clamp_param(
                max_session_duration_seconds,
                default=MAX_SESSION_DEFAULT,
                minimum=MAX_SESSION_MIN,
                maximum=MAX_SESSION_MAX,
            )
        ),
    }
    logger.info("Generating AssemblyAI temporary token (%s)", params)

    try:
        async with _build_client() as client:
            response = await client.get(
                settings.assemblyai_token_url,
                params=params,
                headers={"Authorization": api_key},
            )
    except httpx.HTTPError as exc:
        logger.error("AssemblyAI token request could not be completed: %s", exc)
        raise TranscriptionUpstreamError(502, str(exc)) from exc

    if response.is_error:
        logger.error("AssemblyAI token generation failed: %s %s", response.status_code, response.text)
        raise TranscriptionUpstreamError(response.status_code, response.text)

    try:
        data = response.json()
    except ValueError as exc:
        raise TranscriptionUpstreamError(502, "AssemblyAI returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise TranscriptionUpstreamError(502, "AssemblyAI returned an unexpected body")

    logger.info("AssemblyAI token generated successfully")
    return {"token": data.get("token"), "expires_in_seconds": data.get("expires_in_seconds")}
