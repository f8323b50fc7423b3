"""Pydantic schemas for inbound relay events.

Each event name maps to one model with its own required fields. ``parse_event``
is the single place where raw payloads are validated; any failure surfaces as
InvalidInputError before a handler touches the store.
"""

from typing import Any, ClassVar, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..registry import validate_session_id
from ..relay_types import InvalidInputError


class RelayEvent(BaseModel):
    """Base class for inbound events."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    invalid_message: ClassVar[str] = "Invalid event data"
    bare_string_field: ClassVar[Optional[str]] = None
    """Field to fill when a client sends a plain string instead of an object."""

    @classmethod
    def from_payload(cls, payload: Any) -> "RelayEvent":
        if isinstance(payload, str) and cls.bare_string_field:
            payload = {cls.bare_string_field: payload}
        if not isinstance(payload, dict):
            raise InvalidInputError(cls.invalid_message)
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise InvalidInputError(f"{cls.invalid_message} ({fields})")


class _SessionRefEvent(RelayEvent):
    """An event that only references a session by id."""
    bare_string_field: ClassVar[Optional[str]] = "session_id"
    invalid_message: ClassVar[str] = "Invalid session ID"

    session_id: str = Field(min_length=1)

    @field_validator("session_id")
    @classmethod
    def _usable_room_key(cls, value: str) -> str:
        return validate_session_id(value)


class RegisterClientEvent(RelayEvent):
    invalid_message: ClassVar[str] = "Invalid client registration data"

    type: str = Field(min_length=1)


class JoinSessionEvent(_SessionRefEvent):
    pass


class LeaveSessionEvent(_SessionRefEvent):
    pass


class CloseSessionEvent(_SessionRefEvent):
    pass


class CreateSessionEvent(RelayEvent):
    """Create a session. Fields beyond ``id`` and ``userEmail`` are stored as given."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")
    invalid_message: ClassVar[str] = "Invalid session data: missing required fields"

    id: str = Field(min_length=1)
    user_email: str = Field(min_length=1)

    @field_validator("id")
    @classmethod
    def _usable_room_key(cls, value: str) -> str:
        return validate_session_id(value)

    @property
    def extra_fields(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class SendMessageEvent(RelayEvent):
    """Send a chat message. ``id`` is optional and enables deduplication."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")
    invalid_message: ClassVar[str] = "Invalid message data: missing required fields"

    session_id: str = Field(min_length=1)
    message: str = Field(min_length=1)
    sender: str = Field(min_length=1)
    id: Optional[str] = None

    @field_validator("id")
    @classmethod
    def _empty_id_is_absent(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @property
    def extra_fields(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class AgentJoinSessionEvent(RelayEvent):
    invalid_message: ClassVar[str] = "Invalid agent join data: missing required fields"

    session_id: str = Field(min_length=1)
    agent_id: str = Field(min_length=1)
    agent_name: str = Field(min_length=1)


EVENT_SCHEMAS: Dict[str, Type[RelayEvent]] = {
    "register-client": RegisterClientEvent,
    "join-session": JoinSessionEvent,
    "leave-session": LeaveSessionEvent,
    "create-session": CreateSessionEvent,
    "send-message": SendMessageEvent,
    "agent-join-session": AgentJoinSessionEvent,
    "close-session": CloseSessionEvent,
}


def parse_event(event_name: str, payload: Any) -> RelayEvent:
    """Validate a raw payload against the schema registered for ``event_name``."""
    schema = EVENT_SCHEMAS.get(event_name)
    if schema is None:
        raise InvalidInputError(f"Unknown event: {event_name}")
    return schema.from_payload(payload)
