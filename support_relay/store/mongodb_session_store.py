import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..relay_types import ConflictError, StoreFailureError
from .session_store import SessionStore

logger = logging.getLogger(__name__)

_NO_OBJECT_ID = {"_id": 0}


class MongoDBSessionStore(SessionStore):
    """Session store backed by MongoDB using atomic single-document operations."""

    def __init__(
        self,
        *,
        mongo_uri: str,
        mongo_db: str,
        sessions_collection: str = "chatSessions",
        messages_collection: str = "chatMessages",
        max_pool_size: int = 10,
        server_selection_timeout_ms: int = 5000,
        socket_timeout_ms: int = 45000,
    ):
        if not mongo_uri or not mongo_db:
            raise ValueError("MongoDB URI and database are required")
        self.mongo_uri = mongo_uri
        self.mongo_db = mongo_db
        self._client = AsyncIOMotorClient(
            mongo_uri,
            maxPoolSize=max_pool_size,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
            socketTimeoutMS=socket_timeout_ms,
        )
        self._db = self._client[mongo_db]
        self._sessions = self._db[sessions_collection]
        self._messages = self._db[messages_collection]

    async def ping(self) -> None:
        """Verify the server is reachable. Raises StoreFailureError otherwise."""
        try:
            await self._client.admin.command("ping")
            logger.info(f"[STORE] MongoDB connection verified (db: {self.mongo_db})")
        except PyMongoError as e:
            raise StoreFailureError(f"MongoDB ping failed: {e}")

    async def ensure_indexes(self) -> None:
        """Create the unique indexes that back session creation and message deduplication."""
        try:
            await self._sessions.create_index([("id", ASCENDING)], unique=True)
            await self._messages.create_index(
                [("id", ASCENDING)],
                unique=True,
                partialFilterExpression={"id": {"$type": "string"}},
            )
            await self._messages.create_index([("sessionId", ASCENDING), ("createdAt", ASCENDING)])
        except PyMongoError as e:
            raise StoreFailureError(f"Failed to create MongoDB indexes: {e}")

    async def find_session(self, session_id: str) -> Optional[dict]:
        try:
            return await self._sessions.find_one({"id": session_id}, _NO_OBJECT_ID)
        except PyMongoError as e:
            raise StoreFailureError(f"Failed to read session from MongoDB: {e}")

    async def insert_session(self, doc: dict) -> dict:
        stored = dict(doc)
        try:
            # insert_one adds _id to the dict it is given
            await self._sessions.insert_one(dict(stored))
        except DuplicateKeyError:
            raise ConflictError("Session already exists")
        except PyMongoError as e:
            raise StoreFailureError(f"Failed to insert session into MongoDB: {e}")
        return stored

    async def conditional_update_session(self, session_id: str, expected_status: str, patch: dict) -> bool:
        try:
            result = await self._sessions.update_one(
                {"id": session_id, "status": expected_status},
                {"$set": patch},
            )
        except PyMongoError as e:
            raise StoreFailureError(f"Failed to update session in MongoDB: {e}")
        return result.matched_count > 0

    async def unconditional_update_session(self, session_id: str, patch: dict) -> bool:
        try:
            result = await self._sessions.update_one({"id": session_id}, {"$set": patch})
        except PyMongoError as e:
            raise StoreFailureError(f"Failed to update session in MongoDB: {e}")
        return result.matched_count > 0

    async def find_message(self, message_id: str) -> Optional[dict]:
        try:
            return await self._messages.find_one({"id": message_id}, _NO_OBJECT_ID)
        except PyMongoError as e:
            raise StoreFailureError(f"Failed to read message from MongoDB: {e}")

    async def insert_message(self, doc: dict) -> dict:
        stored = dict(doc)
        try:
            await self._messages.insert_one(dict(stored))
        except DuplicateKeyError:
            raise ConflictError("Message already exists")
        except PyMongoError as e:
            raise StoreFailureError(f"Failed to insert message into MongoDB: {e}")
        return stored

    async def close(self) -> None:
        self._client.close()
        logger.info("[STORE] MongoDB connection closed")
