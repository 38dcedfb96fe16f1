"""Pydantic models for the relay protocol.

Every frame is an envelope ``{"type": str, "data": object}``. Inbound frames
decode into a closed union of command models discriminated by ``type``;
outbound events carry their wire type in ``event_type``.
"""

import json
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from roomrelay.exceptions import ProtocolError
from roomrelay.models import Message, OnlineUser, RelayModel, RoomSummary

# =============================================================================
# Request Models (client -> server)
# =============================================================================


class Authenticate(RelayModel):
    """Bind the connection to an identity asserted by the identity provider."""

    type: Literal["authenticate"] = "authenticate"
    user_id: str = ""
    username: str = ""


class GetRooms(RelayModel):
    """Request the current room list."""

    type: Literal["get_rooms"] = "get_rooms"


class CreateRoom(RelayModel):
    """Create a new room."""

    type: Literal["create_room"] = "create_room"
    name: str = ""
    description: str | None = None


class JoinRoom(RelayModel):
    """Join a room, leaving the current one first."""

    type: Literal["join_room"] = "join_room"
    room_id: str = ""


class LeaveRoom(RelayModel):
    """Leave the current room."""

    type: Literal["leave_room"] = "leave_room"
    room_id: str = ""


class SendMessage(RelayModel):
    """Send a message to the current room."""

    type: Literal["send_message"] = "send_message"
    content: str = ""


class RoomSync(RelayModel):
    """Re-send the current room state to this connection."""

    type: Literal["room_sync"] = "room_sync"


Command = Annotated[
    Authenticate | GetRooms | CreateRoom | JoinRoom | LeaveRoom | SendMessage | RoomSync,
    Field(discriminator="type"),
]

COMMAND_TYPES = frozenset(
    model.model_fields["type"].default
    for model in (
        Authenticate,
        GetRooms,
        CreateRoom,
        JoinRoom,
        LeaveRoom,
        SendMessage,
        RoomSync,
    )
)

_command_adapter = TypeAdapter(Command)


class Envelope(BaseModel):
    """Raw protocol frame."""

    type: str
    data: dict[str, Any] | None = None


def parse_command(raw: str | bytes | dict) -> Command:
    """Decode an inbound frame into a command.

    Parameters
    ----------
    raw : str | bytes | dict
        JSON text (raw WebSocket) or an already decoded envelope (Socket.IO).

    Returns
    -------
    Command
        One of the command models.

    Raises
    ------
    ProtocolError
        If the frame is not a valid envelope, names an unknown type or carries
        wrongly typed fields.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProtocolError("Invalid message format") from e

    try:
        envelope = Envelope.model_validate(raw)
    except ValidationError as e:
        raise ProtocolError("Invalid message format") from e

    if envelope.type not in COMMAND_TYPES:
        raise ProtocolError(f"Unknown message type: {envelope.type}")

    try:
        return _command_adapter.validate_python(
            {**(envelope.data or {}), "type": envelope.type}
        )
    except ValidationError as e:
        raise ProtocolError(f"Invalid {envelope.type} payload") from e


# =============================================================================
# Broadcast Models (server -> clients)
# =============================================================================


class ServerEvent(RelayModel):
    """Base class for outbound events."""

    event_type: ClassVar[str]


class RoomList(ServerEvent):
    event_type: ClassVar[str] = "room_list"

    rooms: list[RoomSummary]


class RoomCreated(ServerEvent):
    event_type: ClassVar[str] = "room_created"

    room: RoomSummary


class RoomJoined(ServerEvent):
    event_type: ClassVar[str] = "room_joined"

    room: RoomSummary


class RoomLeft(ServerEvent):
    event_type: ClassVar[str] = "room_left"

    room_id: str


class RoomMessages(ServerEvent):
    event_type: ClassVar[str] = "room_messages"

    messages: list[Message]


class NewMessage(Message, ServerEvent):
    """A message relayed to every member of its room, sender included."""

    event_type: ClassVar[str] = "new_message"

    @classmethod
    def from_message(cls, message: Message) -> "NewMessage":
        return cls(**message.model_dump())


class UserJoined(ServerEvent):
    event_type: ClassVar[str] = "user_joined"

    user_id: str
    username: str


class UserLeft(ServerEvent):
    event_type: ClassVar[str] = "user_left"

    user_id: str
    username: str


class OnlineUsers(ServerEvent):
    event_type: ClassVar[str] = "online_users"

    users: list[OnlineUser]


class AuthSuccess(ServerEvent):
    event_type: ClassVar[str] = "auth_success"

    user_id: str
    username: str
    message: str = "Successfully authenticated"


class ErrorEvent(ServerEvent):
    event_type: ClassVar[str] = "error"

    message: str
