"""Per-connection client state.

ClientRegistry: maps connection_id → ClientEntry (declared role, joined sessions)

The registry owns the only path into the RoomBroadcaster's join/leave, which
keeps its joined-session sets and the broadcaster's room index consistent.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ..relay_models import DASHBOARD_ROLE, DASHBOARD_ROOM
from ..relay_types import InvalidInputError, InvalidStateError, NotFoundError
from ..rooms import RelayConnection, RoomBroadcaster

logger = logging.getLogger(__name__)


@dataclass
class ClientEntry:
    """A live connection with its declared role and joined session rooms."""
    connection: RelayConnection
    role: Optional[str] = None
    joined_sessions: Set[str] = field(default_factory=set)
    connected_at: float = field(default_factory=time.monotonic)

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id

    @property
    def is_dashboard(self) -> bool:
        return self.role == DASHBOARD_ROLE

    @property
    def connected_for(self) -> float:
        """Seconds since the connection was registered."""
        return time.monotonic() - self.connected_at


def validate_session_id(session_id) -> str:
    """Return ``session_id`` if it is a usable room key, else raise InvalidInputError."""
    if not isinstance(session_id, str) or not session_id.strip():
        raise InvalidInputError("Invalid session ID")
    if session_id == DASHBOARD_ROOM:
        raise InvalidInputError(f"Session ID '{DASHBOARD_ROOM}' is reserved")
    return session_id


class ClientRegistry:
    """Tracks connected clients and keeps their room memberships in sync."""

    def __init__(self, broadcaster: RoomBroadcaster):
        self.broadcaster = broadcaster
        self._clients: Dict[str, ClientEntry] = {}
        self._lock = threading.Lock()

    def connect(self, connection: RelayConnection) -> ClientEntry:
        entry = ClientEntry(connection=connection)
        with self._lock:
            self._clients[connection.connection_id] = entry
        logger.info(f"[REGISTRY] Client connected: {connection.connection_id}")
        return entry

    def get(self, connection_id: str) -> ClientEntry:
        with self._lock:
            entry = self._clients.get(connection_id)
        if entry is None:
            raise NotFoundError(f"Connection {connection_id} not registered")
        return entry

    def register(self, connection_id: str, declared_type: Optional[str]) -> ClientEntry:
        """Record the declared role of a connection; dashboards join the dashboard room."""
        if not isinstance(declared_type, str) or not declared_type.strip():
            raise InvalidInputError("Invalid client registration data")
        entry = self.get(connection_id)
        with self._lock:
            if entry.role is not None and entry.role != declared_type:
                raise InvalidStateError(f"Client already registered as {entry.role}")
            entry.role = declared_type
        logger.info(f"[REGISTRY] Client {connection_id} registered as {declared_type}")

        if entry.is_dashboard:
            self.broadcaster.join(entry.connection, DASHBOARD_ROOM)
            logger.info(f"[REGISTRY] Dashboard client {connection_id} joined dashboard room")
        return entry

    def join_session(self, connection_id: str, session_id) -> ClientEntry:
        session_id = validate_session_id(session_id)
        entry = self.get(connection_id)
        with self._lock:
            entry.joined_sessions.add(session_id)
        self.broadcaster.join(entry.connection, session_id)
        logger.info(f"[REGISTRY] Client {connection_id} joined session {session_id}")
        return entry

    def leave_session(self, connection_id: str, session_id) -> bool:
        session_id = validate_session_id(session_id)
        entry = self.get(connection_id)
        with self._lock:
            was_joined = session_id in entry.joined_sessions
            entry.joined_sessions.discard(session_id)
        self.broadcaster.leave(connection_id, session_id)
        if was_joined:
            logger.info(f"[REGISTRY] Client {connection_id} left session {session_id}")
        return was_joined

    def disconnect(self, connection_id: str, reason: str = "") -> Optional[ClientEntry]:
        """Discard the client entry and leave every room it joined.

        Session status is left untouched, so an agent's claim survives the disconnect.
        """
        with self._lock:
            entry = self._clients.pop(connection_id, None)
            if entry is None:
                return None
            rooms = list(entry.joined_sessions)
            entry.joined_sessions.clear()
        if entry.is_dashboard:
            rooms.append(DASHBOARD_ROOM)
        left = self.broadcaster.leave_all(connection_id, rooms)
        logger.info(f"[REGISTRY] Client disconnected: {connection_id}, reason: {reason or 'unknown'} "
                    f"(connected {entry.connected_for:.1f}s, left {left} room(s))")
        return entry

    def sessions_of(self, connection_id: str) -> List[str]:
        entry = self.get(connection_id)
        with self._lock:
            return sorted(entry.joined_sessions)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._clients)
