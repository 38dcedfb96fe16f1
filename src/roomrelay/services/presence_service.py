"""User presence tracking across multiple connections.

A logical user may hold several connections at once (tabs, devices). Identity
merges by user id: every connection authenticated with the same user id is
attached to the same ``User`` entry, and the user is online exactly while at
least one of those connections is attached.
"""

import asyncio
import dataclasses
import logging

from roomrelay.connections import Connection, Session
from roomrelay.exceptions import InvalidRequest, UsernameTaken
from roomrelay.models import OnlineUser, now_ms

log = logging.getLogger(__name__)


@dataclasses.dataclass(eq=False)
class User:
    """Presence entry of a logical user."""

    user_id: str
    display_name: str
    is_online: bool = False
    last_seen_at: int | None = None
    connections: set[Connection] = dataclasses.field(default_factory=set)


class PresenceService:
    """Handles authentication binding and online/offline state.

    All mutations run under a single table lock, so the display name
    collision check and the binding happen in one step.
    """

    def __init__(self):
        self._users: dict[str, User] = {}
        self._lock = asyncio.Lock()

    async def authenticate(
        self, user_id: str, display_name: str, connection: Connection
    ) -> Session:
        """Attach a connection to a user, creating the user if needed.

        Parameters
        ----------
        user_id : str
            Stable user id supplied by the identity provider.
        display_name : str
            Display name. Overwrites the stored name (last writer wins).
        connection : Connection
            The connection being authenticated.

        Returns
        -------
        Session
            A fresh session for the connection.

        Raises
        ------
        InvalidRequest
            If user id or display name is empty.
        UsernameTaken
            If the display name belongs to a different user who is online.
        """
        display_name = display_name.strip()
        if not user_id.strip() or not display_name:
            raise InvalidRequest("Missing userId or username")

        async with self._lock:
            for other in self._users.values():
                if (
                    other.user_id != user_id
                    and other.display_name == display_name
                    and other.connections
                ):
                    raise UsernameTaken()

            user = self._users.get(user_id)
            if user is None:
                user = User(user_id=user_id, display_name=display_name)
                self._users[user_id] = user
            elif user.display_name != display_name:
                log.info(
                    f"User {user_id} renamed from '{user.display_name}' to '{display_name}'"
                )
                user.display_name = display_name

            user.connections.add(connection)
            user.is_online = True
            user.last_seen_at = now_ms()

            # Display name is a live attribute shared by every session of the user.
            for other_connection in user.connections:
                if other_connection.session is not None:
                    other_connection.session.display_name = display_name

            connection_count = len(user.connections)

        log.info(
            f"User authenticated: {display_name} ({user_id}) - "
            f"Total connections: {connection_count}"
        )
        return Session(user_id=user_id, display_name=display_name)

    async def detach_connection(self, connection: Connection) -> bool:
        """Remove a connection from its user's connection set.

        Parameters
        ----------
        connection : Connection
            A connection whose session names the user.

        Returns
        -------
        bool
            True if the user went fully offline, False if other connections
            remain or the connection was never attached.
        """
        if connection.session is None:
            return False

        async with self._lock:
            user = self._users.get(connection.session.user_id)
            if user is None or connection not in user.connections:
                return False

            user.connections.discard(connection)
            if user.connections:
                log.info(
                    f"User {user.display_name} still has "
                    f"{len(user.connections)} active connections"
                )
                return False

            user.is_online = False
            user.last_seen_at = now_ms()

        log.info(f"User {user.display_name} is now offline (no more connections)")
        return True

    async def list_online(self) -> list[OnlineUser]:
        """Snapshot of every online user."""
        async with self._lock:
            return [
                OnlineUser(user_id=user.user_id, username=user.display_name)
                for user in self._users.values()
                if user.is_online
            ]

    async def connections_for(self, *user_ids: str) -> list[Connection]:
        """Snapshot of the live connections of the given users."""
        async with self._lock:
            connections = []
            for user_id in user_ids:
                user = self._users.get(user_id)
                if user is None:
                    continue
                connections.extend(c for c in user.connections if c.alive)
            return connections

    def attached_connections(self, user_id: str) -> list[Connection]:
        """Snapshot of every connection attached to a user, live or not."""
        user = self._users.get(user_id)
        return list(user.connections) if user is not None else []

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def is_online(self, user_id: str) -> bool:
        user = self._users.get(user_id)
        return user is not None and user.is_online
