"""Websocket transport for the signaling relay."""
from __future__ import annotations

import json
import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from ..schemas.signaling import SignalFrame
from ..services.registry import DuplicateSessionError
from ..services.signaling import SignalingConnection, SignalingRelay, make_message

logger = logging.getLogger(__name__)

router = APIRouter()


def get_relay(websocket: WebSocket) -> SignalingRelay:
    """FastAPI dependency returning the relay owned by the application."""

    return websocket.app.state.relay


@router.websocket("/ws")
async def signaling_endpoint(websocket: WebSocket, relay: SignalingRelay = Depends(get_relay)) -> None:
    """Carry JSON ``{"event", "data"}`` frames between one endpoint and the relay."""

    session_id = uuid4().hex
    await websocket.accept()

    try:
        await relay.connect(SignalingConnection(connection_id=session_id, send=websocket.send_json))
    except DuplicateSessionError:
        logger.exception("Session id collision for %s; closing connection", session_id)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    try:
        await websocket.send_json(make_message("connect", {"id": session_id}))
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            frame = _parse_frame(message.get("text") or message.get("bytes"), session_id)
            if frame is not None:
                await relay.dispatch(session_id, frame.event, frame.data)
    except WebSocketDisconnect:
        pass
    except Exception:  # noqa: BLE001 - any transport failure ends the session
        logger.exception("Signaling connection %s failed", session_id)
    finally:
        await relay.disconnect(session_id)


def _parse_frame(raw: str | bytes | None, session_id: str) -> SignalFrame | None:
    try:
        return SignalFrame.model_validate(json.loads(raw))
    except (TypeError, ValueError, ValidationError) as exc:
        logger.warning("Ignoring malformed frame from %s: %s", session_id, exc)
        return None
