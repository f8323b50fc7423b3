import copy
import logging
import threading
from typing import Dict, List, Optional

from ..relay_types import ConflictError
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class MemorySessionStore(SessionStore):
    """Session store with in-memory tracking.

    All reads and writes happen under one lock, which makes the conditional
    update atomic. Returned documents are copies.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[str, dict] = {}
        self._messages: List[dict] = []
        self._messages_by_id: Dict[str, dict] = {}

    async def find_session(self, session_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._sessions.get(session_id)
            return copy.deepcopy(doc) if doc is not None else None

    async def insert_session(self, doc: dict) -> dict:
        with self._lock:
            if doc["id"] in self._sessions:
                raise ConflictError("Session already exists")
            self._sessions[doc["id"]] = copy.deepcopy(doc)
            logger.debug(f"[STORE] Inserted session {doc['id']}")
            return copy.deepcopy(doc)

    async def conditional_update_session(self, session_id: str, expected_status: str, patch: dict) -> bool:
        with self._lock:
            doc = self._sessions.get(session_id)
            if doc is None or doc.get("status") != expected_status:
                logger.debug(f"[STORE] Conditional update of session {session_id} did not match "
                             f"(expected status: {expected_status})")
                return False
            doc.update(copy.deepcopy(patch))
            return True

    async def unconditional_update_session(self, session_id: str, patch: dict) -> bool:
        with self._lock:
            doc = self._sessions.get(session_id)
            if doc is None:
                return False
            doc.update(copy.deepcopy(patch))
            return True

    async def find_message(self, message_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._messages_by_id.get(message_id)
            return copy.deepcopy(doc) if doc is not None else None

    async def insert_message(self, doc: dict) -> dict:
        with self._lock:
            message_id = doc.get("id")
            if message_id and message_id in self._messages_by_id:
                raise ConflictError("Message already exists")
            stored = copy.deepcopy(doc)
            self._messages.append(stored)
            if message_id:
                self._messages_by_id[message_id] = stored
            return copy.deepcopy(stored)

    @property
    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def messages_for_session(self, session_id: str) -> List[dict]:
        """Return all messages of a session in insertion order."""
        with self._lock:
            return [copy.deepcopy(m) for m in self._messages if m.get("sessionId") == session_id]
