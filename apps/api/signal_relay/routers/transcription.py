"""Transcription token issuance endpoint."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Query

from ..schemas.transcription import TranscriptionTokenResponse
from ..services import assemblyai

router = APIRouter()


@router.post("/assemblyai-token", response_model=TranscriptionTokenResponse)
async def create_assemblyai_token(
    expires_in_seconds: str | None = Query(default=None),
    max_session_duration_seconds: str | None = Query(default=None),
    payload: dict[str, Any] | None = Body(default=None),
) -> TranscriptionTokenResponse:
    """Return a temporary AssemblyAI streaming token. Query parameters win over the JSON body."""

    body = payload or {}
    token = await assemblyai.issue_streaming_token(
        expires_in_seconds if expires_in_seconds is not None else body.get("expires_in_seconds"),
        max_session_duration_seconds
        if max_session_duration_seconds is not None
        else body.get("max_session_duration_seconds"),
    )
    return TranscriptionTokenResponse(**token)
