"""Connection handles, per-connection sessions and the connection registry.

A ``Connection`` wraps one live transport (raw WebSocket or Socket.IO sid).
Transports subclass it and implement ``_write``. The registry only tracks
which handles exist; presence and room state live in the services.
"""

import abc
import asyncio
import dataclasses
import logging
import uuid
from collections.abc import Iterator

from roomrelay.exceptions import TransportError
from roomrelay.socket_events import ServerEvent

log = logging.getLogger(__name__)


@dataclasses.dataclass
class Session:
    """Authenticated state of a single connection."""

    user_id: str
    display_name: str
    current_room_id: str | None = None


class Connection(abc.ABC):
    """A live transport connection.

    Parameters
    ----------
    sid : str | None
        Connection identifier. Generated when not given.
    """

    def __init__(self, sid: str | None = None):
        self.sid = sid or uuid.uuid4().hex
        self.session: Session | None = None
        # Serializes command handling and teardown for this connection.
        self.lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._closed = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sid={self.sid!r})"

    @property
    def alive(self) -> bool:
        """True while the transport accepts writes."""
        return not self._closed and self._is_writable()

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_closed(self) -> None:
        self._closed = True

    def _is_writable(self) -> bool:
        return True

    async def send(self, event: ServerEvent) -> None:
        """Write one event to the transport.

        Raises
        ------
        TransportError
            If the connection is closed or the write fails. The connection is
            marked closed on failure.
        """
        if not self.alive:
            raise TransportError(f"Connection {self.sid} is not writable")
        try:
            async with self._write_lock:
                await self._write(event.event_type, event.to_wire())
        except Exception as e:
            self._closed = True
            raise TransportError(f"Write to {self.sid} failed: {e}") from e

    @abc.abstractmethod
    async def _write(self, event_type: str, data: dict) -> None:
        """Deliver an encoded event over the transport."""


class ConnectionRegistry:
    """Tracks every live connection by sid, authenticated or not."""

    def __init__(self):
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.snapshot())

    def __contains__(self, sid: str) -> bool:
        return sid in self._connections

    def add(self, connection: Connection) -> Connection:
        if connection.sid in self._connections:
            raise ValueError(f"Connection {connection.sid} is already registered")
        self._connections[connection.sid] = connection
        log.debug(f"Registered connection {connection.sid} ({len(self)} total)")
        return connection

    def remove(self, sid: str) -> Connection | None:
        connection = self._connections.pop(sid, None)
        if connection is not None:
            log.debug(f"Removed connection {sid} ({len(self)} total)")
        return connection

    def get(self, sid: str) -> Connection | None:
        return self._connections.get(sid)

    def snapshot(self) -> list[Connection]:
        """Copy of the registered connections, safe to iterate across awaits."""
        return list(self._connections.values())
