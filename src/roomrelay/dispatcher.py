"""Command dispatch: validate against session state, mutate, broadcast.

Per connection the session moves through
``unauthenticated -> authenticated (no room) <-> authenticated (in room)``.
A user is in at most one room across all of its sessions; joining another room
leaves the current one first and clears every session still naming it.
"""

import logging
from typing import assert_never

from roomrelay.broadcast import Broadcaster
from roomrelay.connections import Connection, Session
from roomrelay.exceptions import (
    ConflictError,
    NotAuthenticated,
    NotInRoom,
    ProtocolError,
    RoomRelayException,
)
from roomrelay.services import PresenceService, RoomService
from roomrelay.socket_events import (
    Authenticate,
    AuthSuccess,
    Command,
    CreateRoom,
    ErrorEvent,
    GetRooms,
    JoinRoom,
    LeaveRoom,
    NewMessage,
    OnlineUsers,
    RoomCreated,
    RoomJoined,
    RoomLeft,
    RoomList,
    RoomMessages,
    RoomSync,
    SendMessage,
    UserJoined,
    UserLeft,
    parse_command,
)

log = logging.getLogger(__name__)


class CommandDispatcher:
    """Executes client commands against the presence and room services.

    Callers must hold ``connection.lock`` so that commands of one connection
    never interleave with each other or with its teardown.

    Parameters
    ----------
    presence : PresenceService
        User presence table.
    rooms : RoomService
        Room store.
    broadcaster : Broadcaster
        Fan-out engine used for every outbound event.
    recent_messages : int
        Number of messages sent to a connection on join and sync.
    """

    def __init__(
        self,
        presence: PresenceService,
        rooms: RoomService,
        broadcaster: Broadcaster,
        recent_messages: int = 50,
    ):
        self.presence = presence
        self.rooms = rooms
        self.broadcaster = broadcaster
        self.recent_messages = recent_messages

    async def handle_raw(self, connection: Connection, raw: str | bytes | dict) -> None:
        """Decode and dispatch one inbound frame."""
        try:
            command = parse_command(raw)
        except ProtocolError as e:
            log.warning(f"Protocol error from {connection.sid}: {e}")
            await self._reply_error(connection, e)
            return
        await self.dispatch(connection, command)

    async def dispatch(self, connection: Connection, command: Command) -> None:
        """Run a decoded command. Domain errors are reported to the caller only."""
        try:
            match command:
                case Authenticate():
                    await self._authenticate(connection, command)
                case GetRooms():
                    await self._get_rooms(connection)
                case CreateRoom():
                    await self._create_room(connection, command)
                case JoinRoom():
                    await self._join_room(connection, command)
                case LeaveRoom():
                    await self._leave_room(connection, command)
                case SendMessage():
                    await self._send_message(connection, command)
                case RoomSync():
                    await self._room_sync(connection)
                case _:
                    assert_never(command)
        except RoomRelayException as e:
            log.info(f"{command.type} rejected for {connection.sid}: {e}")
            await self._reply_error(connection, e)

    async def _reply_error(self, connection: Connection, exc: Exception) -> None:
        await self.broadcaster.send_to_connection(connection, ErrorEvent(message=str(exc)))

    @staticmethod
    def _require_session(connection: Connection) -> Session:
        if connection.session is None:
            raise NotAuthenticated()
        return connection.session

    async def _broadcast_online_users(self) -> None:
        users = await self.presence.list_online()
        await self.broadcaster.broadcast_to_all(OnlineUsers(users=users))

    async def _authenticate(self, connection: Connection, command: Authenticate) -> None:
        current = connection.session
        if current is not None and current.user_id != command.user_id:
            raise ConflictError("Already authenticated as a different user")

        session = await self.presence.authenticate(
            command.user_id, command.username, connection
        )
        if connection.session is None:
            connection.session = session

        await self.broadcaster.send_to_connection(
            connection,
            AuthSuccess(user_id=session.user_id, username=session.display_name),
        )
        await self._broadcast_online_users()

    async def _get_rooms(self, connection: Connection) -> None:
        rooms = await self.rooms.list_summaries()
        await self.broadcaster.send_to_connection(connection, RoomList(rooms=rooms))

    async def _create_room(self, connection: Connection, command: CreateRoom) -> None:
        session = self._require_session(connection)
        summary = await self.rooms.create_room(
            command.name, command.description, session.user_id
        )
        await self.broadcaster.send_to_connection(connection, RoomCreated(room=summary))
        rooms = await self.rooms.list_summaries()
        await self.broadcaster.broadcast_to_all(RoomList(rooms=rooms))

    async def _send_room_state(self, connection: Connection, room_id: str) -> None:
        summary = await self.rooms.summary(room_id)
        messages = await self.rooms.recent_messages(room_id, self.recent_messages)
        await self.broadcaster.send_to_connection(connection, RoomJoined(room=summary))
        await self.broadcaster.send_to_connection(
            connection, RoomMessages(messages=messages)
        )

    async def _join_room(self, connection: Connection, command: JoinRoom) -> None:
        session = self._require_session(connection)
        room = await self.rooms.get_room(command.room_id)

        current_room_id = self._room_of_user(connection, session)
        if current_room_id is not None and current_room_id != room.id:
            await self._leave_user_room(connection, session, current_room_id)

        await self.rooms.join(room.id, session.user_id)
        # No await between the membership change and the session update.
        session.current_room_id = room.id
        log.info(f"{session.display_name} joined room: {room.name} ({connection.sid})")

        await self._send_room_state(connection, room.id)
        await self.broadcaster.broadcast_to_room_members(
            room.id,
            UserJoined(user_id=session.user_id, username=session.display_name),
            exclude_user_id=session.user_id,
        )

    def _room_of_user(self, connection: Connection, session: Session) -> str | None:
        """The room the session's user is in, found through any of its sessions."""
        if session.current_room_id is not None:
            return session.current_room_id
        for other in self.presence.attached_connections(session.user_id):
            if other is not connection and other.session is not None:
                if other.session.current_room_id is not None:
                    return other.session.current_room_id
        return None

    async def _leave_user_room(
        self,
        connection: Connection,
        session: Session,
        room_id: str,
        notify: bool = True,
    ) -> None:
        """Remove the session's user from a room.

        Every session of the user naming the room is cleared together with the
        membership and receives ``room_left``. The calling connection is left
        out of that delivery unless ``notify``.
        """
        await self.rooms.leave(room_id, session.user_id)
        # No await between the membership change and the session updates.
        cleared = []
        for other in {connection, *self.presence.attached_connections(session.user_id)}:
            if other.session is not None and other.session.current_room_id == room_id:
                other.session.current_room_id = None
                if notify or other is not connection:
                    cleared.append(other)
        log.info(f"{session.display_name} left room: {room_id}")

        await self.broadcaster.broadcast_to_room_members(
            room_id,
            UserLeft(user_id=session.user_id, username=session.display_name),
        )
        await self.broadcaster.deliver(cleared, RoomLeft(room_id=room_id))

    async def _leave_room(self, connection: Connection, command: LeaveRoom) -> None:
        session = connection.session
        if session is None or session.current_room_id != command.room_id:
            return
        await self._leave_user_room(connection, session, command.room_id)

    async def _send_message(self, connection: Connection, command: SendMessage) -> None:
        session = self._require_session(connection)
        room_id = session.current_room_id
        if room_id is None:
            raise NotInRoom()

        message = await self.rooms.append_message(
            room_id, session.user_id, session.display_name, command.content
        )
        log.debug(f"Message from {session.display_name} in {room_id}: {message.content}")
        await self.broadcaster.broadcast_to_room_members(
            room_id, NewMessage.from_message(message)
        )

    async def _room_sync(self, connection: Connection) -> None:
        session = self._require_session(connection)
        if session.current_room_id is None:
            return
        await self._send_room_state(connection, session.current_room_id)

    async def handle_disconnect(self, connection: Connection) -> None:
        """Tear down a closing connection's session.

        Leaves the current room (broadcasting ``user_left``), detaches the
        connection from its user and broadcasts ``online_users`` if the user
        went fully offline.
        """
        session = connection.session
        if session is None:
            return

        if session.current_room_id is not None:
            await self._leave_user_room(
                connection, session, session.current_room_id, notify=False
            )
        went_offline = await self.presence.detach_connection(connection)
        connection.session = None
        if went_offline:
            await self._broadcast_online_users()
