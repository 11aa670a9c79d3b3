"""In-memory registry of signaling sessions and the rooms they belong to."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Set

logger = logging.getLogger(__name__)


class RegistryError(RuntimeError):
    """Base class for registry invariant violations."""


class DuplicateSessionError(RegistryError):
    """Raised when a session id is registered twice."""


class UnknownSessionError(RegistryError):
    """Raised when a room mutation names a session that was never registered."""


class RoomFullError(RegistryError):
    """Raised when a join would exceed the configured room capacity."""

    def __init__(self, room: str, capacity: int) -> None:
        super().__init__(f"Room {room!r} is full ({capacity} participants)")
        self.room = room
        self.capacity = capacity


class ConnectionRegistry:
    """Track room membership in both directions: room -> members and session -> rooms.

    Rooms keep their members in join order. A room is dropped as soon as its last
    member leaves, so an id that is re-used later starts from an empty roster.

    Lock scopes never await, so each operation runs atomically on the event loop.
    Notify other members from the snapshot an operation returns, not from a later
    re-read.
    """

    def __init__(self) -> None:
        # dict values are unused; dict keys preserve join order.
        self._rooms: Dict[str, Dict[str, None]] = {}
        self._sessions: Dict[str, Set[str]] = {}
        self._lock = asyncio.Lock()

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    def is_registered(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def register(self, session_id: str) -> None:
        """Create an empty membership record for a new session."""

        async with self._lock:
            if session_id in self._sessions:
                raise DuplicateSessionError(f"Session {session_id!r} is already registered")
            self._sessions[session_id] = set()

    async def join(self, session_id: str, room: str, capacity: int | None = None) -> list[str]:
        """Add the session to the room and return the members that were already there."""

        async with self._lock:
            joined = self._sessions.get(session_id)
            if joined is None:
                raise UnknownSessionError(f"Session {session_id!r} is not registered")

            members = self._rooms.get(room, {})
            others = [member for member in members if member != session_id]
            if capacity is not None and session_id not in members and len(members) >= capacity:
                raise RoomFullError(room, capacity)

            self._rooms.setdefault(room, {})[session_id] = None
            joined.add(room)
            return others

    async def leave(self, session_id: str, room: str) -> list[str] | None:
        """Remove the session from the room.

        Returns the members left behind, read in the same step as the removal, or
        None when the session was not a member.
        """

        async with self._lock:
            joined = self._sessions.get(session_id)
            if joined is not None:
                joined.discard(room)
            return self._remove_member(room, session_id)

    async def members_of(self, room: str) -> list[str]:
        async with self._lock:
            return list(self._rooms.get(room, {}))

    async def rooms_of(self, session_id: str) -> set[str]:
        async with self._lock:
            return set(self._sessions.get(session_id, ()))

    async def unregister(self, session_id: str) -> dict[str, list[str]]:
        """Drop the session and every membership it holds.

        Returns each vacated room mapped to the members still in it at removal time.
        """

        async with self._lock:
            joined = self._sessions.pop(session_id, None)
            if joined is None:
                return {}
            vacated: dict[str, list[str]] = {}
            for room in joined:
                remaining = self._remove_member(room, session_id)
                if remaining is not None:
                    vacated[room] = remaining
            return vacated

    def _remove_member(self, room: str, session_id: str) -> list[str] | None:
        members = self._rooms.get(room)
        if not members or session_id not in members:
            return None
        del members[session_id]
        if not members:
            self._rooms.pop(room, None)
            logger.debug("Room %s is empty; removed", room)
        return list(members)
