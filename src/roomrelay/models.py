"""Wire-level data models shared by the stores and the socket events.

Fields are snake_case in Python and camelCase on the wire.
"""

import time

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current unix time in milliseconds."""
    return int(time.time() * 1000)


class RelayModel(BaseModel):
    """Base model serialising to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Message(RelayModel):
    """A chat message. Immutable once stored in a room's history."""

    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    sender: str
    sender_name: str
    timestamp: int
    room_id: str


class RoomSummary(RelayModel):
    """Public view of a room as sent in room lists and join confirmations."""

    id: str
    name: str
    description: str
    participant_count: int
    message_count: int


class OnlineUser(RelayModel):
    """A logical user with at least one live connection."""

    user_id: str
    username: str
