"""Event API of the relay.

Provides RelayHub, the per-connection RelayEventHandler and the inbound event schemas.
The WebSocket endpoint itself lives in support_relay.server.build_ws_router().
"""

from .relay_event_api import ERROR_EVENT, RelayEventHandler, RelayHub
from .relay_events import EVENT_SCHEMAS, RelayEvent, parse_event

__all__ = ["ERROR_EVENT", "EVENT_SCHEMAS", "RelayEvent", "RelayEventHandler", "RelayHub", "parse_event"]
