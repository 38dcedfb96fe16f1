"""Raw WebSocket transport speaking JSON ``{"type", "data"}`` envelopes."""

import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from roomrelay.connections import Connection
from roomrelay.server import RelayServer

log = logging.getLogger(__name__)


class WebSocketConnection(Connection):
    """Connection backed by a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket, sid: str | None = None):
        super().__init__(sid)
        self.websocket = websocket

    def _is_writable(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def _write(self, event_type: str, data: dict) -> None:
        await self.websocket.send_json({"type": event_type, "data": data})


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Accept a client and pump its frames into the relay until it closes."""
    relay: RelayServer = websocket.app.state.relay
    await websocket.accept()
    connection = WebSocketConnection(websocket)
    await relay.on_connect(connection)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            await relay.on_message(connection, raw)
    finally:
        await relay.on_disconnect(connection)
