import logging
from typing import Optional

from ..relay_types import RelayError, StoreFailureError
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class GuardedSessionStore(SessionStore):
    """Wraps another store so every backend failure surfaces as a RelayError.

    Errors the wrapped store already reports as ``RelayError`` (e.g. ``ConflictError``)
    pass through unchanged; anything else becomes ``StoreFailureError``.
    """

    def __init__(self, inner: SessionStore):
        self.inner = inner

    async def _call(self, action: str, awaitable):
        try:
            return await awaitable
        except RelayError:
            raise
        except Exception as e:
            logger.error(f"[STORE] Failed to {action}: {type(e).__name__}: {e}")
            raise StoreFailureError(f"Failed to {action}: {e}") from e

    async def find_session(self, session_id: str) -> Optional[dict]:
        return await self._call("read session", self.inner.find_session(session_id))

    async def insert_session(self, doc: dict) -> dict:
        return await self._call("insert session", self.inner.insert_session(doc))

    async def conditional_update_session(self, session_id: str, expected_status: str, patch: dict) -> bool:
        return await self._call("update session",
                                self.inner.conditional_update_session(session_id, expected_status, patch))

    async def unconditional_update_session(self, session_id: str, patch: dict) -> bool:
        return await self._call("update session", self.inner.unconditional_update_session(session_id, patch))

    async def find_message(self, message_id: str) -> Optional[dict]:
        return await self._call("read message", self.inner.find_message(message_id))

    async def insert_message(self, doc: dict) -> dict:
        return await self._call("insert message", self.inner.insert_message(doc))

    async def close(self) -> None:
        await self._call("close store", self.inner.close())


def guard_store(store: SessionStore) -> GuardedSessionStore:
    """Wrap ``store`` unless it is already guarded."""
    return store if isinstance(store, GuardedSessionStore) else GuardedSessionStore(store)
