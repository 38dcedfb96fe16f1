"""Fan-out of server events to connections.

Targets are resolved under the store locks and delivered after the locks are
released. Delivery is best effort: connections that are not writable are
skipped, failed writes are logged and dropped.
"""

import asyncio
import logging
from collections.abc import Iterable

from roomrelay.connections import Connection, ConnectionRegistry
from roomrelay.exceptions import TransportError
from roomrelay.services import PresenceService, RoomService
from roomrelay.socket_events import ServerEvent

log = logging.getLogger(__name__)


class Broadcaster:
    """Delivers events to single connections, users, room members or everyone.

    Every method returns the number of connections the event was written to.
    """

    def __init__(
        self,
        connections: ConnectionRegistry,
        presence: PresenceService,
        rooms: RoomService,
    ):
        self.connections = connections
        self.presence = presence
        self.rooms = rooms

    async def _deliver_one(self, connection: Connection, event: ServerEvent) -> bool:
        if not connection.alive:
            return False
        try:
            await connection.send(event)
        except TransportError as e:
            log.debug(f"Dropped {event.event_type} for {connection.sid}: {e}")
            return False
        return True

    async def deliver(
        self, connections: Iterable[Connection], event: ServerEvent
    ) -> int:
        targets = list(dict.fromkeys(connections))
        if not targets:
            return 0
        results = await asyncio.gather(
            *(self._deliver_one(connection, event) for connection in targets)
        )
        return sum(results)

    async def send_to_connection(
        self, connection: Connection, event: ServerEvent
    ) -> int:
        return await self.deliver([connection], event)

    async def send_to(self, user_id: str, event: ServerEvent) -> int:
        """Deliver to every live connection of a user."""
        connections = await self.presence.connections_for(user_id)
        return await self.deliver(connections, event)

    async def broadcast_to_room_members(
        self,
        room_id: str,
        event: ServerEvent,
        exclude_user_id: str | None = None,
    ) -> int:
        """Deliver to every live connection of every member of a room."""
        member_ids = await self.rooms.member_ids(room_id)
        user_ids = [uid for uid in member_ids if uid != exclude_user_id]
        connections = await self.presence.connections_for(*user_ids)
        return await self.deliver(connections, event)

    async def broadcast_to_all(self, event: ServerEvent) -> int:
        """Deliver to every registered connection, authenticated or not."""
        return await self.deliver(self.connections.snapshot(), event)
