"""Tests for inbound event validation."""
import pytest

from support_relay.api.relay_events import (
    AgentJoinSessionEvent,
    CloseSessionEvent,
    CreateSessionEvent,
    JoinSessionEvent,
    RegisterClientEvent,
    SendMessageEvent,
    parse_event,
)
from support_relay.relay_models import DASHBOARD_ROOM
from support_relay.relay_types import ErrorKind, InvalidInputError


def test_register_client_requires_type():
    event = parse_event("register-client", {"type": "customer"})
    assert isinstance(event, RegisterClientEvent)
    assert event.type == "customer"

    for payload in [None, {}, {"type": ""}, {"type": None}, "customer"]:
        with pytest.raises(InvalidInputError, match="Invalid client registration data") as exc_info:
            parse_event("register-client", payload)
        assert exc_info.value.kind == ErrorKind.INVALID_INPUT


def test_session_ref_events_accept_bare_string_and_object():
    assert parse_event("join-session", "S1").session_id == "S1"
    assert parse_event("join-session", {"sessionId": "S1"}).session_id == "S1"
    assert isinstance(parse_event("close-session", "S1"), CloseSessionEvent)
    assert isinstance(parse_event("join-session", "S1"), JoinSessionEvent)


@pytest.mark.parametrize("payload", [None, "", {}, {"sessionId": ""}, {"sessionId": 42}, 42])
def test_session_ref_events_reject_invalid_ids(payload):
    with pytest.raises(InvalidInputError, match="Invalid session ID"):
        parse_event("join-session", payload)


def test_reserved_dashboard_key_is_not_a_session_id():
    with pytest.raises(InvalidInputError, match="reserved"):
        parse_event("join-session", DASHBOARD_ROOM)
    with pytest.raises(InvalidInputError, match="reserved"):
        parse_event("create-session", {"id": DASHBOARD_ROOM, "userEmail": "a@x.com"})


def test_create_session_keeps_extra_fields():
    event = parse_event("create-session", {
        "id": "S1",
        "userEmail": "a@x.com",
        "userName": "Ann",
        "topic": "billing",
    })
    assert isinstance(event, CreateSessionEvent)
    assert event.id == "S1"
    assert event.user_email == "a@x.com"
    assert event.extra_fields == {"userName": "Ann", "topic": "billing"}


@pytest.mark.parametrize("payload", [
    {"userEmail": "a@x.com"},
    {"id": "S1"},
    {"id": "", "userEmail": "a@x.com"},
    {"id": "S1", "userEmail": ""},
])
def test_create_session_requires_id_and_email(payload):
    with pytest.raises(InvalidInputError, match="Invalid session data: missing required fields"):
        parse_event("create-session", payload)


def test_send_message_optional_id():
    event = parse_event("send-message", {"sessionId": "S1", "sender": "customer", "message": "hi"})
    assert isinstance(event, SendMessageEvent)
    assert event.id is None

    event = parse_event("send-message", {"sessionId": "S1", "sender": "customer", "message": "hi", "id": "m1"})
    assert event.id == "m1"

    # An empty id does not enable deduplication
    event = parse_event("send-message", {"sessionId": "S1", "sender": "customer", "message": "hi", "id": ""})
    assert event.id is None


@pytest.mark.parametrize("missing", ["sessionId", "sender", "message"])
def test_send_message_required_fields(missing):
    payload = {"sessionId": "S1", "sender": "customer", "message": "hi"}
    del payload[missing]
    with pytest.raises(InvalidInputError, match="Invalid message data"):
        parse_event("send-message", payload)


def test_agent_join_requires_all_fields():
    event = parse_event("agent-join-session", {"sessionId": "S1", "agentId": "A1", "agentName": "Alice"})
    assert isinstance(event, AgentJoinSessionEvent)
    assert (event.session_id, event.agent_id, event.agent_name) == ("S1", "A1", "Alice")

    with pytest.raises(InvalidInputError, match="Invalid agent join data"):
        parse_event("agent-join-session", {"sessionId": "S1", "agentId": "A1"})


def test_unknown_event():
    with pytest.raises(InvalidInputError, match="Unknown event: typing"):
        parse_event("typing", {})
