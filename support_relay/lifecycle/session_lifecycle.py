"""Session lifecycle: waiting → active → closed.

Status only moves forward. The waiting → active claim is decided by the
store's conditional update, so of several agents racing for the same session
exactly one wins and the others see ConflictError.
"""

import logging
from typing import Optional

from ..registry import ClientRegistry
from ..relay_models import DASHBOARD_ROOM, ChatSessionRecord, SessionStatus, utc_timestamp
from ..relay_types import ConflictError, InvalidStateError, NotFoundError
from ..rooms import RoomBroadcaster
from ..store import SessionStore, guard_store

logger = logging.getLogger(__name__)

_SERVER_OWNED_FIELDS = {
    "id", "status", "userEmail", "user_email", "agentId", "agent_id", "agentName", "agent_name",
    "createdAt", "created_at", "updatedAt", "updated_at",
}


class SessionLifecycle:
    """Creates, claims and closes support sessions and announces each change."""

    def __init__(self, store: SessionStore, registry: ClientRegistry, broadcaster: RoomBroadcaster):
        self.store = guard_store(store)
        self.registry = registry
        self.broadcaster = broadcaster

    async def _load(self, session_id: str) -> ChatSessionRecord:
        doc = await self.store.find_session(session_id)
        if doc is None:
            raise NotFoundError("Session not found")
        return ChatSessionRecord.model_validate(doc)

    def _join_room(self, connection_id: Optional[str], session_id: str) -> None:
        if connection_id is not None:
            self.registry.join_session(connection_id, session_id)

    async def create(self, session_id: str, user_email: str, *, extra: Optional[dict] = None,
                     connection_id: Optional[str] = None) -> ChatSessionRecord:
        """Persist a new waiting session, join its creator and notify dashboards."""
        logger.info(f"[LIFECYCLE] Creating session: {session_id}")
        if await self.store.find_session(session_id) is not None:
            raise ConflictError("Session already exists")

        now = utc_timestamp()
        fields = {k: v for k, v in (extra or {}).items() if k not in _SERVER_OWNED_FIELDS}
        session = ChatSessionRecord.model_validate({
            **fields,
            "id": session_id,
            "userEmail": user_email,
            "status": SessionStatus.WAITING,
            "createdAt": now,
            "updatedAt": now,
        })
        # Unique index on id turns a lost creation race into ConflictError here
        stored = await self.store.insert_session(session.to_document())
        session = ChatSessionRecord.model_validate(stored)

        self._join_room(connection_id, session_id)
        await self.broadcaster.broadcast(DASHBOARD_ROOM, "new-chat-session", session.to_document())
        logger.info(f"[LIFECYCLE] Notified dashboard clients of new session: {session_id}")
        return session

    async def claim_by_agent(self, session_id: str, agent_id: str, agent_name: str, *,
                             connection_id: Optional[str] = None) -> ChatSessionRecord:
        """Move a waiting session to active for the given agent."""
        logger.info(f"[LIFECYCLE] Agent {agent_id} joining session: {session_id}")
        session = await self._load(session_id)
        if session.status == SessionStatus.ACTIVE:
            raise InvalidStateError("Session already active")
        if session.status == SessionStatus.CLOSED:
            raise InvalidStateError("Session closed")

        now = utc_timestamp()
        matched = await self.store.conditional_update_session(
            session_id,
            SessionStatus.WAITING.value,
            {
                "status": SessionStatus.ACTIVE.value,
                "agentId": agent_id,
                "agentName": agent_name,
                "updatedAt": now,
            },
        )
        if not matched:
            logger.info(f"[LIFECYCLE] Agent {agent_id} lost the claim race for session {session_id}")
            raise ConflictError("Session not available for joining")

        self._join_room(connection_id, session_id)
        session = await self._load(session_id)

        await self.broadcaster.broadcast(session_id, "agent-joined", {
            "sessionId": session_id,
            "agentId": agent_id,
            "agentName": agent_name,
            "timestamp": utc_timestamp(),
        })
        await self.broadcaster.broadcast(DASHBOARD_ROOM, "session-updated", {
            "session": session.to_document(),
            "timestamp": utc_timestamp(),
        })
        logger.info(f"[LIFECYCLE] Session {session_id} claimed by {agent_name} ({agent_id})")
        return session

    async def close(self, session_id: str) -> None:
        """Close a session. Closing an already closed session succeeds."""
        logger.info(f"[LIFECYCLE] Closing session: {session_id}")
        matched = await self.store.unconditional_update_session(session_id, {
            "status": SessionStatus.CLOSED.value,
            "updatedAt": utc_timestamp(),
        })
        if not matched:
            raise NotFoundError("Session not found")
        await self.broadcaster.broadcast(session_id, "session-closed", {"sessionId": session_id})
