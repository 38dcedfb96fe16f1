"""Socket.IO transport.

The Socket.IO event name carries the envelope ``type`` and its argument the
envelope ``data``. Server events are emitted the same way, addressed to the
connection's sid.
"""

import logging

import socketio

from roomrelay.connections import Connection
from roomrelay.server import RelayServer

log = logging.getLogger(__name__)


class SocketIOConnection(Connection):
    """Connection backed by a Socket.IO session id."""

    def __init__(self, sio: socketio.AsyncServer, sid: str):
        super().__init__(sid)
        self.sio = sio

    async def _write(self, event_type: str, data: dict) -> None:
        await self.sio.emit(event_type, data, to=self.sid)


def create_socketio_server(
    relay: RelayServer, cors_allowed_origins: str | list[str] = "*"
) -> socketio.AsyncServer:
    """Create an ASGI Socket.IO server whose events feed the relay.

    Parameters
    ----------
    relay : RelayServer
        The relay owning the stores.
    cors_allowed_origins : str | list[str]
        Passed through to ``socketio.AsyncServer``.

    Returns
    -------
    socketio.AsyncServer
        Server with ``connect``, ``disconnect`` and catch-all handlers.
    """
    # always_connect acknowledges the connection before the connect handler
    # runs, so the initial room list is not emitted ahead of the handshake.
    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_allowed_origins,
        always_connect=True,
    )

    @sio.on("connect")
    async def on_connect(sid: str, environ: dict, auth: dict | None = None) -> None:
        await relay.on_connect(SocketIOConnection(sio, sid))

    @sio.on("disconnect")
    async def on_disconnect(sid: str, reason: str | None = None) -> None:
        connection = relay.connections.get(sid)
        if connection is None:
            return
        await relay.on_disconnect(connection)

    @sio.on("*")
    async def on_event(event: str, sid: str, data: dict | None = None) -> None:
        connection = relay.connections.get(sid)
        if connection is None:
            log.debug(f"Ignoring {event} from unknown sid {sid}")
            return
        await relay.on_message(connection, {"type": event, "data": data})

    return sio
