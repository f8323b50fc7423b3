"""Event API of the relay, independent of the transport.

RelayHub: owns the store, broadcaster, client registry, lifecycle and ingestion
RelayEventHandler: per-connection dispatcher turning every outcome into an ack or event
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from ..ingestion import MessageIngestion
from ..lifecycle import SessionLifecycle
from ..registry import ClientRegistry
from ..relay_models import utc_timestamp
from ..relay_types import RelayError
from ..rooms import RelayConnection, RoomBroadcaster
from ..store import SessionStore
from .relay_events import (
    AgentJoinSessionEvent,
    CloseSessionEvent,
    CreateSessionEvent,
    JoinSessionEvent,
    LeaveSessionEvent,
    RegisterClientEvent,
    SendMessageEvent,
    parse_event,
)

logger = logging.getLogger(__name__)

AckCallback = Callable[[Dict[str, Any]], Awaitable[None]]

ERROR_EVENT = "session-error"

# Event emitted with the success response when the client supplied no ack
_FALLBACK_EVENTS = {
    "register-client": "client-registered",
    "join-session": "joined-session",
    "leave-session": "left-session",
    "create-session": "session-created",
}

# Failure responses of these events echo the session id
_SESSION_SCOPED_EVENTS = {"join-session", "leave-session", "agent-join-session", "close-session"}


class RelayHub:
    """Shared relay components for all connections of one process."""

    def __init__(self, store: SessionStore):
        self.store = store
        self.broadcaster = RoomBroadcaster()
        self.registry = ClientRegistry(self.broadcaster)
        self.lifecycle = SessionLifecycle(store, self.registry, self.broadcaster)
        self.ingestion = MessageIngestion(store, self.broadcaster)

    def open(self, connection: RelayConnection) -> "RelayEventHandler":
        """Register a new connection and return its event handler."""
        self.registry.connect(connection)
        return RelayEventHandler(self, connection)


class RelayEventHandler:
    """Handle the events of a single connection.

    Failures never escape ``handle``: they are answered through the ack when the
    client asked for one, otherwise through a ``session-error`` event.
    """

    def __init__(self, hub: RelayHub, connection: RelayConnection):
        self.hub = hub
        self.connection = connection

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id

    async def handle(self, event_name: str, payload: Any, ack: Optional[AckCallback] = None) -> None:
        try:
            event = parse_event(event_name, payload)
            handler = getattr(self, "_on_" + event_name.replace("-", "_"))
            response = await handler(event)
        except RelayError as e:
            logger.warning(f"[RELAY] {event_name} from {self.connection_id} failed: {e.kind.value}: {e.message}")
            await self._fail(event_name, payload, e.message, e.kind.value, ack)
            return
        except Exception as e:
            logger.error(f"[RELAY] Unexpected error in {event_name} from {self.connection_id}: "
                         f"{type(e).__name__}: {e}", exc_info=True)
            await self._fail(event_name, payload, str(e) or "An unexpected error occurred", type(e).__name__, ack)
            return

        if ack is not None:
            await ack(response)
        elif event_name in _FALLBACK_EVENTS:
            await self.connection.send(_FALLBACK_EVENTS[event_name], response)

    def disconnect(self, reason: str = "") -> None:
        self.hub.registry.disconnect(self.connection_id, reason)

    async def _fail(self, event_name: str, payload: Any, message: str, error_type: str,
                    ack: Optional[AckCallback]) -> None:
        if ack is None:
            await self.connection.send(ERROR_EVENT, {
                "event": event_name,
                "message": message or "An unexpected error occurred",
                "errorType": error_type,
                "timestamp": utc_timestamp(),
            })
            return

        response: Dict[str, Any] = {"success": False, "error": message, "errorType": error_type}
        if event_name in _SESSION_SCOPED_EVENTS:
            response["sessionId"] = _raw_session_id(payload)
        if event_name != "agent-join-session":
            response["timestamp"] = utc_timestamp()
        await ack(response)

    # ── Event handlers ────────────────────────────────────────

    async def _on_register_client(self, event: RegisterClientEvent) -> dict:
        self.hub.registry.register(self.connection_id, event.type)
        return {
            "clientId": self.connection_id,
            "type": event.type,
            "success": True,
            "timestamp": utc_timestamp(),
        }

    async def _on_join_session(self, event: JoinSessionEvent) -> dict:
        self.hub.registry.join_session(self.connection_id, event.session_id)
        return {"sessionId": event.session_id, "success": True, "timestamp": utc_timestamp()}

    async def _on_leave_session(self, event: LeaveSessionEvent) -> dict:
        self.hub.registry.leave_session(self.connection_id, event.session_id)
        return {"sessionId": event.session_id, "success": True, "timestamp": utc_timestamp()}

    async def _on_create_session(self, event: CreateSessionEvent) -> dict:
        session = await self.hub.lifecycle.create(
            event.id,
            event.user_email,
            extra=event.extra_fields,
            connection_id=self.connection_id,
        )
        return {"session": session.to_document(), "success": True, "timestamp": utc_timestamp()}

    async def _on_send_message(self, event: SendMessageEvent) -> dict:
        result = await self.hub.ingestion.send(
            event.session_id,
            event.sender,
            event.message,
            message_id=event.id,
            extra=event.extra_fields,
        )
        return {
            "success": True,
            "message": result.message.to_document(),
            "duplicate": result.duplicate,
            "timestamp": utc_timestamp(),
        }

    async def _on_agent_join_session(self, event: AgentJoinSessionEvent) -> dict:
        session = await self.hub.lifecycle.claim_by_agent(
            event.session_id,
            event.agent_id,
            event.agent_name,
            connection_id=self.connection_id,
        )
        return {"success": True, "session": session.to_document()}

    async def _on_close_session(self, event: CloseSessionEvent) -> dict:
        await self.hub.lifecycle.close(event.session_id)
        return {"success": True, "sessionId": event.session_id}


def _raw_session_id(payload: Any) -> Optional[str]:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        return payload.get("sessionId")
    return None
