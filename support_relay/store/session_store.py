from abc import ABC, abstractmethod
from typing import Optional


class SessionStore(ABC):
    """Base class for the durable store of session and message documents.

    Documents are plain dicts in the camelCase shape of ``ChatSessionRecord`` and
    ``ChatMessageRecord``. Implementations raise ``ConflictError`` on duplicate ids
    and ``StoreFailureError`` when the backend itself fails.
    """

    @abstractmethod
    async def find_session(self, session_id: str) -> Optional[dict]:
        """Return the session document with the given id, or None."""
        raise NotImplementedError("Subclasses must implement find_session")

    @abstractmethod
    async def insert_session(self, doc: dict) -> dict:
        """Insert a new session document and return the stored copy."""
        raise NotImplementedError("Subclasses must implement insert_session")

    @abstractmethod
    async def conditional_update_session(self, session_id: str, expected_status: str, patch: dict) -> bool:
        """Apply ``patch`` only if the stored status still equals ``expected_status``.

        The check and the write happen atomically. Returns True if a document matched.
        """
        raise NotImplementedError("Subclasses must implement conditional_update_session")

    @abstractmethod
    async def unconditional_update_session(self, session_id: str, patch: dict) -> bool:
        """Apply ``patch`` to the session. Returns True if a document matched."""
        raise NotImplementedError("Subclasses must implement unconditional_update_session")

    @abstractmethod
    async def find_message(self, message_id: str) -> Optional[dict]:
        """Return the message document with the given id, or None."""
        raise NotImplementedError("Subclasses must implement find_message")

    @abstractmethod
    async def insert_message(self, doc: dict) -> dict:
        """Insert a new message document and return the stored copy."""
        raise NotImplementedError("Subclasses must implement insert_message")

    async def close(self) -> None:
        """Release backend resources. The default implementation does nothing."""
        pass
