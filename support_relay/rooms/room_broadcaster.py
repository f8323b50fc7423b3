"""Room-based fan-out of relay events.

A room is keyed by session id, plus the reserved dashboard room. Every room
carries its own lock, so joins and broadcasts on unrelated sessions never
contend. Empty rooms are dropped; a join that races with the drop retries on a
fresh room.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, Iterable, List

from .connection import RelayConnection

logger = logging.getLogger(__name__)


class _Room:
    """Membership of one room."""

    def __init__(self, key: str):
        self.key = key
        self.lock = threading.Lock()
        self.members: Dict[str, RelayConnection] = {}
        self.discarded = False


class RoomBroadcaster:
    """Maps room keys to subscribed connections and delivers events to them."""

    def __init__(self):
        self._rooms: Dict[str, _Room] = {}

    def join(self, connection: RelayConnection, room_key: str) -> None:
        while True:
            room = self._rooms.setdefault(room_key, _Room(room_key))
            with room.lock:
                if room.discarded:
                    continue
                room.members[connection.connection_id] = connection
                logger.debug(f"[ROOMS] {connection.connection_id} joined {room_key} ({len(room.members)} members)")
                return

    def leave(self, connection_id: str, room_key: str) -> bool:
        """Remove a connection from a room. Returns False if it was not a member."""
        room = self._rooms.get(room_key)
        if room is None:
            return False
        with room.lock:
            removed = room.members.pop(connection_id, None) is not None
            if not room.members and not room.discarded:
                room.discarded = True
                if self._rooms.get(room_key) is room:
                    del self._rooms[room_key]
        if removed:
            logger.debug(f"[ROOMS] {connection_id} left {room_key}")
        return removed

    def leave_all(self, connection_id: str, room_keys: Iterable[str]) -> int:
        """Remove a connection from every given room. Returns the number of rooms left."""
        return sum(1 for key in list(room_keys) if self.leave(connection_id, key))

    def members(self, room_key: str) -> List[RelayConnection]:
        room = self._rooms.get(room_key)
        if room is None:
            return []
        with room.lock:
            return list(room.members.values())

    def is_member(self, connection_id: str, room_key: str) -> bool:
        return any(c.connection_id == connection_id for c in self.members(room_key))

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    async def broadcast(self, room_key: str, event: str, payload: Any) -> int:
        """Deliver ``payload`` to every current member of the room.

        Members are snapshotted at call time. A failed delivery to one member is
        logged and does not affect the others. Returns the number of recipients.
        """
        recipients = self.members(room_key)
        if not recipients:
            logger.debug(f"[ROOMS] No members in {room_key} for '{event}'")
            return 0

        results = await asyncio.gather(
            *(conn.send(event, payload) for conn in recipients),
            return_exceptions=True,
        )
        for conn, result in zip(recipients, results):
            if isinstance(result, Exception):
                logger.warning(f"[ROOMS] Delivery of '{event}' to {conn.connection_id} failed: "
                               f"{type(result).__name__}: {result}")
        logger.debug(f"[ROOMS] Broadcast '{event}' to {len(recipients)} member(s) of {room_key}")
        return len(recipients)
