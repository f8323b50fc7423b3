"""Test configuration and fixtures."""
import asyncio
from typing import Any, List, Optional, Tuple

import pytest

from support_relay.api import RelayHub
from support_relay.relay_models import DASHBOARD_ROLE
from support_relay.rooms import RelayConnection
from support_relay.store import MemorySessionStore


class RecordingConnection(RelayConnection):
    """Connection that keeps every event it is sent."""

    def __init__(self, connection_id: str):
        super().__init__(connection_id)
        self.events: List[Tuple[str, Any]] = []

    async def send(self, event: str, payload: Any) -> None:
        self.events.append((event, payload))

    def received(self, event: str) -> List[Any]:
        return [payload for name, payload in self.events if name == event]


class BrokenConnection(RelayConnection):
    """Connection whose transport is gone."""

    async def send(self, event: str, payload: Any) -> None:
        raise ConnectionResetError("socket closed")


class SlowReadStore(MemorySessionStore):
    """Memory store that yields to the event loop after every read.

    Lets concurrent handlers interleave between their read and their write.
    """

    async def find_session(self, session_id: str) -> Optional[dict]:
        doc = await super().find_session(session_id)
        await asyncio.sleep(0)
        return doc

    async def find_message(self, message_id: str) -> Optional[dict]:
        doc = await super().find_message(message_id)
        await asyncio.sleep(0)
        return doc


class CallRecordingStore(MemorySessionStore):
    """Memory store that records the name of every store method called."""

    def __init__(self):
        super().__init__()
        self.calls: List[str] = []

    async def find_session(self, session_id: str) -> Optional[dict]:
        self.calls.append("find_session")
        return await super().find_session(session_id)

    async def insert_session(self, doc: dict) -> dict:
        self.calls.append("insert_session")
        return await super().insert_session(doc)

    async def conditional_update_session(self, session_id: str, expected_status: str, patch: dict) -> bool:
        self.calls.append("conditional_update_session")
        return await super().conditional_update_session(session_id, expected_status, patch)

    async def unconditional_update_session(self, session_id: str, patch: dict) -> bool:
        self.calls.append("unconditional_update_session")
        return await super().unconditional_update_session(session_id, patch)

    async def find_message(self, message_id: str) -> Optional[dict]:
        self.calls.append("find_message")
        return await super().find_message(message_id)

    async def insert_message(self, doc: dict) -> dict:
        self.calls.append("insert_message")
        return await super().insert_message(doc)


class FailingStore(MemorySessionStore):
    """Memory store whose session reads fail with a configurable exception."""

    def __init__(self, error: Exception):
        super().__init__()
        self.error = error

    async def find_session(self, session_id: str) -> Optional[dict]:
        raise self.error


class AckRecorder:
    """Async ack callback that stores the responses it receives."""

    def __init__(self):
        self.responses: List[dict] = []

    async def __call__(self, response: dict) -> None:
        self.responses.append(response)

    @property
    def last(self) -> dict:
        return self.responses[-1]


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def hub(store):
    return RelayHub(store)


@pytest.fixture
def dashboard(hub):
    """A connected client registered as dashboard."""
    conn = RecordingConnection("dash-1")
    hub.registry.connect(conn)
    hub.registry.register(conn.connection_id, DASHBOARD_ROLE)
    return conn


def connect(hub: RelayHub, connection_id: str) -> RecordingConnection:
    conn = RecordingConnection(connection_id)
    hub.registry.connect(conn)
    return conn
