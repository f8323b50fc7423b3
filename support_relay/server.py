"""WebSocket transport for the relay (FastAPI/starlette).

Frames are JSON objects. Client → server::

    {"event": "send-message", "data": {...}, "ackId": "optional"}

Server → client::

    {"event": "new-message", "data": {...}}
    {"event": "ack", "ackId": "...", "data": {...}}

Each connection's frames are handled one at a time in arrival order.
"""

import asyncio
import json
import logging
from typing import Any, Optional
from uuid import uuid4

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from support_relay.api import ERROR_EVENT, RelayEventHandler, RelayHub
from support_relay.relay_models import utc_timestamp
from support_relay.rooms import RelayConnection

logger = logging.getLogger(__name__)

WS_PATH = "/ws"


class WebSocketConnection(RelayConnection):
    """RelayConnection that sends events as JSON frames over a WebSocket."""

    def __init__(self, ws: WebSocket, connection_id: Optional[str] = None):
        super().__init__(connection_id or uuid4().hex)
        self._ws = ws
        self._send_lock = asyncio.Lock()

    async def send(self, event: str, payload: Any) -> None:
        await self.send_frame({"event": event, "data": payload})

    async def send_frame(self, frame: dict) -> None:
        if self._ws.client_state != WebSocketState.CONNECTED:
            logger.debug(f"[WS] Dropping '{frame.get('event')}' for closed connection {self.connection_id}")
            return
        async with self._send_lock:
            await self._ws.send_json(frame)


async def _dispatch_frame(handler: RelayEventHandler, connection: WebSocketConnection, raw: Optional[str]) -> None:
    """Decode one text frame and hand it to the event handler.

    ``raw`` is None for binary frames, which are answered like malformed JSON.
    """
    frame = None
    if raw is not None:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            pass
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        await connection.send(ERROR_EVENT, {
            "event": None,
            "message": "Frames must be JSON objects with an 'event' name",
            "errorType": "InvalidFrame",
            "timestamp": utc_timestamp(),
        })
        return

    ack = None
    ack_id = frame.get("ackId")
    if ack_id is not None:
        async def ack(response: dict) -> None:
            await connection.send_frame({"event": "ack", "ackId": ack_id, "data": response})

    await handler.handle(frame["event"], frame.get("data"), ack)


def build_ws_router(hub: RelayHub):
    """Build a FastAPI APIRouter with the relay WebSocket endpoint."""
    from fastapi import APIRouter

    router = APIRouter()

    @router.websocket(WS_PATH)
    async def relay_socket(ws: WebSocket):
        await ws.accept()
        connection = WebSocketConnection(ws)
        handler = hub.open(connection)
        reason = "server shutdown"
        try:
            while True:
                message = await ws.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
                await _dispatch_frame(handler, connection, message.get("text"))
        except WebSocketDisconnect as e:
            reason = f"client disconnect ({e.code})"
        except Exception as e:
            reason = f"transport error ({type(e).__name__})"
            logger.error(f"[WS] Socket error for {connection.connection_id}: {type(e).__name__}: {e}")
        finally:
            handler.disconnect(reason)

    return router
