"""Models for sessions and messages relayed between customers, agents and dashboards."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DASHBOARD_ROOM = "dashboard-clients"
"""Reserved room key of the dashboard audience."""
DASHBOARD_ROLE = "dashboard"
"""Declared client type that joins the dashboard audience."""


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string, e.g. ``2024-05-17T09:30:00.123Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SessionStatus(str, Enum):
    """Lifecycle status of a support session."""
    WAITING = "waiting"
    ACTIVE = "active"
    CLOSED = "closed"


class ChatSessionRecord(BaseModel):
    """A stored support session. Extra fields given at creation are kept."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    status: SessionStatus = SessionStatus.WAITING
    user_email: str
    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    created_at: str
    updated_at: str

    @property
    def is_closed(self) -> bool:
        return self.status == SessionStatus.CLOSED

    def to_document(self) -> dict:
        """Serialize to the camelCase document shape used on the wire and in the store."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ChatMessageRecord(BaseModel):
    """A stored chat message. ``id`` is client supplied and used for deduplication."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = None
    session_id: str
    sender: str
    message: str
    created_at: str
    server_received_at: str

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
