"""In-memory room membership registry."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Set

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Track which connection IDs are members of which room.

    A room exists only while it has at least one member: entries are created by
    the first ``add_member`` and dropped as soon as the last member is removed.
    Every read returns a copy, so callers can fan out over a snapshot while other
    connections keep joining and leaving.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, Set[str]] = {}
        self._lock = asyncio.Lock()

    async def add_member(self, room_id: str, connection_id: str) -> None:
        """Insert a connection into the room, creating the room if needed."""

        async with self._lock:
            self._rooms.setdefault(room_id, set()).add(connection_id)

    async def remove_member(self, room_id: str, connection_id: str) -> bool:
        """Remove a connection from the room and drop the room once it is empty.

        Returns ``True`` when the connection was a member.
        """

        async with self._lock:
            members = self._rooms.get(room_id)
            if not members or connection_id not in members:
                return False
            members.discard(connection_id)
            if not members:
                self._rooms.pop(room_id, None)
                logger.debug("Room %s closed", room_id)
            return True

    async def list_members(self, room_id: str, exclude: Optional[str] = None) -> list[str]:
        """Return the room's members, leaving out ``exclude``."""

        async with self._lock:
            return self._snapshot(room_id, exclude)

    async def join(self, room_id: str, connection_id: str) -> list[str]:
        """Add a member and return who was already there, in one step."""

        async with self._lock:
            existing = self._snapshot(room_id, connection_id)
            self._rooms.setdefault(room_id, set()).add(connection_id)
            return existing

    async def member_count(self, room_id: str) -> int:
        async with self._lock:
            return len(self._rooms.get(room_id, ()))

    async def has_room(self, room_id: str) -> bool:
        async with self._lock:
            return room_id in self._rooms

    async def rooms(self) -> dict[str, int]:
        """Return active room IDs mapped to their member counts."""

        async with self._lock:
            return {room_id: len(members) for room_id, members in self._rooms.items()}

    def _snapshot(self, room_id: str, exclude: Optional[str]) -> list[str]:
        return [member for member in self._rooms.get(room_id, ()) if member != exclude]
