"""Data contracts for the transcription token endpoint."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class TranscriptionTokenResponse(BaseModel):
    """Token fields exactly as AssemblyAI returned them; missing fields come back as null."""

    token: Any = Field(default=None, description="Temporary AssemblyAI streaming token")
    expires_in_seconds: Any = Field(default=None, description="Seconds until the token expires, as reported upstream")
