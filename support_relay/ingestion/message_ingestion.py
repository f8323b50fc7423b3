"""Idempotent ingestion of chat messages.

A message carrying a client-supplied ``id`` is stored at most once; resending it
returns the stored record flagged as duplicate, without writes or broadcasts.
Within one session, persist + broadcast run under a per-session lock so room
members see messages in the order they were stored.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import Optional

from ..relay_models import ChatMessageRecord, ChatSessionRecord, utc_timestamp
from ..relay_types import ConflictError, InvalidStateError, NotFoundError
from ..rooms import RoomBroadcaster
from ..store import SessionStore, guard_store

logger = logging.getLogger(__name__)

_SERVER_OWNED_FIELDS = {
    "id", "sessionId", "session_id", "sender", "message",
    "createdAt", "created_at", "serverReceivedAt", "server_received_at",
}


@dataclass
class IngestionResult:
    """Outcome of a send: the stored message and whether it was already known."""
    message: ChatMessageRecord
    duplicate: bool


class MessageIngestion:
    """Validates, deduplicates, persists and broadcasts chat messages."""

    def __init__(self, store: SessionStore, broadcaster: RoomBroadcaster):
        self.store = guard_store(store)
        self.broadcaster = broadcaster
        self._session_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    async def _existing(self, message_id: Optional[str]) -> Optional[ChatMessageRecord]:
        if not message_id:
            return None
        doc = await self.store.find_message(message_id)
        return ChatMessageRecord.model_validate(doc) if doc is not None else None

    async def send(self, session_id: str, sender: str, message: str, *,
                   message_id: Optional[str] = None, extra: Optional[dict] = None) -> IngestionResult:
        logger.info(f"[INGEST] Sending message to session: {session_id}")
        doc = await self.store.find_session(session_id)
        if doc is None:
            raise NotFoundError("Session not found")
        if ChatSessionRecord.model_validate(doc).is_closed:
            raise InvalidStateError("Cannot send message to closed session")

        existing = await self._existing(message_id)
        if existing is not None:
            logger.info(f"[INGEST] Duplicate message detected: {message_id}")
            return IngestionResult(message=existing, duplicate=True)

        fields = {k: v for k, v in (extra or {}).items() if k not in _SERVER_OWNED_FIELDS}

        lock = self._lock_for(session_id)
        async with lock:
            # Timestamp order follows persistence order
            server_timestamp = utc_timestamp()
            record = ChatMessageRecord.model_validate({
                **fields,
                "id": message_id,
                "sessionId": session_id,
                "sender": sender,
                "message": message,
                "createdAt": server_timestamp,
                "serverReceivedAt": server_timestamp,
            })
            try:
                stored = await self.store.insert_message(record.to_document())
            except ConflictError:
                # A concurrent send with the same id was stored first
                existing = await self._existing(message_id)
                if existing is None:
                    raise
                logger.info(f"[INGEST] Duplicate message detected on insert: {message_id}")
                return IngestionResult(message=existing, duplicate=True)
            record = ChatMessageRecord.model_validate(stored)
            await self.broadcaster.broadcast(session_id, "new-message", record.to_document())

        await self.store.unconditional_update_session(session_id, {"updatedAt": server_timestamp})
        logger.info(f"[INGEST] Message delivered to session: {session_id}")
        return IngestionResult(message=record, duplicate=False)
