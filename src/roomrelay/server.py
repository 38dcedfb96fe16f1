"""Relay server: owns the stores and drives connection lifecycles.

One ``RelayServer`` is created per process. Transports (raw WebSocket,
Socket.IO) translate their own events into ``on_connect``, ``on_message`` and
``on_disconnect`` calls.
"""

import logging

from roomrelay.broadcast import Broadcaster
from roomrelay.config import RelayConfig, get_config
from roomrelay.connections import Connection, ConnectionRegistry
from roomrelay.dispatcher import CommandDispatcher
from roomrelay.services import PresenceService, RoomService
from roomrelay.socket_events import RoomList

log = logging.getLogger(__name__)


class RelayServer:
    """Wires the connection registry, presence table, room store, broadcaster
    and dispatcher together.

    Parameters
    ----------
    config : RelayConfig | None
        Configuration object. If None, loads from environment via get_config().
    """

    def __init__(self, config: RelayConfig | None = None):
        self.config = config if config is not None else get_config()
        self.connections = ConnectionRegistry()
        self.presence = PresenceService()
        self.rooms = RoomService(
            history_limit=self.config.history_limit,
            max_name_length=self.config.max_room_name_length,
        )
        self.rooms.bootstrap_defaults()
        self.broadcaster = Broadcaster(self.connections, self.presence, self.rooms)
        self.dispatcher = CommandDispatcher(
            self.presence,
            self.rooms,
            self.broadcaster,
            recent_messages=self.config.recent_messages,
        )

    async def on_connect(self, connection: Connection) -> Connection:
        """Register a freshly accepted connection and send it the room list."""
        self.connections.add(connection)
        log.info(f"New client connected: {connection.sid}")
        rooms = await self.rooms.list_summaries()
        await self.broadcaster.send_to_connection(connection, RoomList(rooms=rooms))
        return connection

    async def on_message(self, connection: Connection, raw: str | bytes | dict) -> None:
        """Handle one inbound frame. Frames arriving after close are ignored."""
        async with connection.lock:
            if connection.closed:
                log.debug(f"Ignoring frame for closed connection {connection.sid}")
                return
            await self.dispatcher.handle_raw(connection, raw)

    async def on_disconnect(self, connection: Connection) -> None:
        """Tear down the session, then forget the connection."""
        connection.mark_closed()
        async with connection.lock:
            if connection.session is not None:
                log.info(
                    f"Client disconnected: {connection.session.display_name} "
                    f"({connection.sid})"
                )
            await self.dispatcher.handle_disconnect(connection)
            self.connections.remove(connection.sid)
