"""support-relay: real-time chat relay between customers, agents and dashboards."""

from support_relay.relay_models import (
    DASHBOARD_ROLE, DASHBOARD_ROOM, ChatMessageRecord, ChatSessionRecord, SessionStatus,
)
from support_relay.relay_types import (
    ConflictError, ErrorKind, InvalidInputError, InvalidStateError, NotFoundError, RelayError, StoreFailureError,
)
from support_relay.store import MemorySessionStore, SessionStore
from support_relay.rooms import RelayConnection, RoomBroadcaster
from support_relay.registry import ClientRegistry
from support_relay.lifecycle import SessionLifecycle
from support_relay.ingestion import IngestionResult, MessageIngestion
from support_relay.api import RelayEventHandler, RelayHub
from support_relay.config import RelayConfig

__all__ = [
    "DASHBOARD_ROLE",
    "DASHBOARD_ROOM",
    "ChatMessageRecord",
    "ChatSessionRecord",
    "SessionStatus",
    "ErrorKind",
    "RelayError",
    "InvalidInputError",
    "NotFoundError",
    "ConflictError",
    "InvalidStateError",
    "StoreFailureError",
    "SessionStore",
    "MemorySessionStore",
    "MongoDBSessionStore",
    "RelayConnection",
    "RoomBroadcaster",
    "ClientRegistry",
    "SessionLifecycle",
    "IngestionResult",
    "MessageIngestion",
    "RelayEventHandler",
    "RelayHub",
    "RelayConfig",
]


def __getattr__(name: str):
    if name == "MongoDBSessionStore":
        from support_relay.store.mongodb_session_store import MongoDBSessionStore
        return MongoDBSessionStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
