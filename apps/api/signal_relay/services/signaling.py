"""In-memory WebRTC signaling relay.

The relay brokers the offer/answer handshake between endpoints that share a room.
It never inspects negotiation payloads; it only decides who receives them.

Inbound events handled by :meth:`SignalingRelay.dispatch`:

* ``join-room`` (room id): the joiner receives ``room-users`` with the members that
  were already present (omitted when the room was empty) and every existing member
  receives ``user-joined`` with the joiner's id. The newcomer is expected to send
  offers; existing members wait to be contacted.
* ``offer`` / ``answer`` / ``ice-candidate``: unicast to ``data["to"]`` with the
  sender stamped as ``from``.
* ``leave-room`` (room id): remaining members receive ``user-left``.

Transport disconnects go through :meth:`SignalingRelay.disconnect`.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable

from .registry import ConnectionRegistry, RegistryError, RoomFullError

SendCallable = Callable[[dict], Awaitable[None]]

logger = logging.getLogger(__name__)

JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
ROOM_USERS = "room-users"
ROOM_FULL = "room-full"
USER_JOINED = "user-joined"
USER_LEFT = "user-left"

# event name -> payload field forwarded to the recipient
DIRECTED_EVENTS: Dict[str, str] = {
    "offer": "offer",
    "answer": "answer",
    "ice-candidate": "candidate",
}


@dataclass(slots=True)
class SignalingConnection:
    """Connection wrapper for signaling participants."""

    connection_id: str
    send: SendCallable


def make_message(event: str, data: Any) -> dict:
    """Frame an outbound event the way clients expect it on the wire."""

    return {"event": event, "data": data}


class SignalingRelay:
    """Route signaling events between connections using a :class:`ConnectionRegistry`."""

    def __init__(self, registry: ConnectionRegistry | None = None, *, room_capacity: int | None = None) -> None:
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.room_capacity = room_capacity
        self._connections: Dict[str, SignalingConnection] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, connection: SignalingConnection) -> None:
        """Register a freshly accepted connection."""

        await self.registry.register(connection.connection_id)
        self._connections[connection.connection_id] = connection
        logger.info("User connected: %s", connection.connection_id)

    async def disconnect(self, session_id: str) -> set[str]:
        """Remove the session everywhere and tell each vacated room it left."""

        self._connections.pop(session_id, None)
        vacated = await self.registry.unregister(session_id)
        logger.info("User disconnected: %s (rooms: %s)", session_id, sorted(vacated))

        for room, remaining in vacated.items():
            await self._send_many(remaining, USER_LEFT, {"userId": session_id})
            logger.debug("Notified room %s about disconnect: %s", room, session_id)
        return set(vacated)

    async def dispatch(self, session_id: str, event: str, data: Any = None) -> None:
        """Handle one inbound event. Bad input is logged and dropped, never raised."""

        try:
            if event == JOIN_ROOM:
                room = _room_id(data)
                if room is None:
                    logger.warning("Dropping %s from %s: invalid room id %r", event, session_id, data)
                    return
                await self.join_room(session_id, room)
            elif event == LEAVE_ROOM:
                room = _room_id(data)
                if room is None:
                    logger.warning("Dropping %s from %s: invalid room id %r", event, session_id, data)
                    return
                await self.leave_room(session_id, room)
            elif event in DIRECTED_EVENTS:
                await self.forward(session_id, event, data)
            else:
                logger.warning("Ignoring unknown event %r from %s", event, session_id)
        except RegistryError:
            logger.exception("Registry rejected %s from %s", event, session_id)

    async def join_room(self, session_id: str, room: str) -> list[str]:
        """Join ``room`` and run peer discovery. Returns the members that were already there."""

        logger.info("User %s joining room: %s", session_id, room)
        try:
            others = await self.registry.join(session_id, room, capacity=self.room_capacity)
        except RoomFullError as exc:
            logger.info("Room %s is full (%s); rejecting %s", room, exc.capacity, session_id)
            await self._send(session_id, ROOM_FULL, {"roomId": room})
            return []

        if others:
            await self._send(session_id, ROOM_USERS, others)
        await self._send_many(others, USER_JOINED, session_id)
        logger.debug("Room %s now has %d other user(s) besides %s", room, len(others), session_id)
        return others

    async def leave_room(self, session_id: str, room: str) -> bool:
        """Leave ``room``; remaining members hear about it only if the session was a member."""

        logger.info("User %s leaving room: %s", session_id, room)
        remaining = await self.registry.leave(session_id, room)
        if remaining is None:
            return False
        await self._send_many(remaining, USER_LEFT, {"userId": session_id})
        return True

    async def forward(self, session_id: str, event: str, data: Any) -> bool:
        """Unicast a negotiation payload to ``data["to"]``, stamping the sender."""

        field = DIRECTED_EVENTS[event]
        if not isinstance(data, dict):
            logger.warning("Dropping %s from %s: payload is not an object", event, session_id)
            return False

        target = data.get("to")
        if not isinstance(target, str) or not target:
            logger.warning("Dropping %s from %s: missing 'to' field", event, session_id)
            return False
        if data.get(field) is None:
            logger.warning("Dropping %s from %s: missing %r field", event, session_id, field)
            return False

        delivered = await self._send(target, event, {field: data[field], "from": session_id})
        if delivered:
            logger.debug("Forwarded %s from %s to %s", event, session_id, target)
        return delivered

    async def _send(self, session_id: str, event: str, data: Any) -> bool:
        connection = self._connections.get(session_id)
        if connection is None:
            logger.debug("Dropping %s for %s: no live connection", event, session_id)
            return False
        await self._deliver([connection], event, data)
        return True

    async def _send_many(self, session_ids: Iterable[str], event: str, data: Any) -> None:
        connections = [self._connections[sid] for sid in session_ids if sid in self._connections]
        if connections:
            await self._deliver(connections, event, data)

    async def _deliver(self, connections: list[SignalingConnection], event: str, data: Any) -> None:
        message = make_message(event, data)
        results = await asyncio.gather(
            *(connection.send(message) for connection in connections), return_exceptions=True
        )
        for connection, result in zip(connections, results):
            if isinstance(result, BaseException):
                logger.warning("Failed to deliver %s to %s: %s", event, connection.connection_id, result)


def _room_id(data: Any) -> str | None:
    if isinstance(data, str) and data:
        return data
    return None
