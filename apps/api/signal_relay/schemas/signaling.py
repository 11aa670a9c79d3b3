"""Wire frames exchanged over the signaling websocket."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SignalFrame(BaseModel):
    """A single ``{"event": ..., "data": ...}`` frame."""

    model_config = ConfigDict(extra="ignore")

    event: str = Field(..., min_length=1, description="Event name, e.g. join-room or offer")
    data: Any = Field(default=None, description="Event payload, forwarded without interpretation")
