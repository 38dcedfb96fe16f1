"""Room lifecycle, membership and bounded message history.

Rooms are never deleted. Each room owns a lock guarding its membership and
history; the room index has its own lock so that name uniqueness is checked
and the new room inserted in one step.
"""

import asyncio
import collections
import dataclasses
import logging
import uuid

from roomrelay.exceptions import InvalidRequest, RoomNameTaken, RoomNotFound
from roomrelay.models import Message, RoomSummary, now_ms

log = logging.getLogger(__name__)

DEFAULT_ROOMS = (
    ("general", "General", "General discussion room"),
    ("random", "Random", "Random topics and fun conversations"),
    ("help", "Help", "Get help and ask questions"),
)


@dataclasses.dataclass(eq=False)
class Room:
    """A chat room. ``members`` holds user ids; a user is in at most one room."""

    id: str
    name: str
    description: str
    created_by: str | None
    created_at: int
    history: collections.deque[Message]
    members: set[str] = dataclasses.field(default_factory=set)
    lock: asyncio.Lock = dataclasses.field(default_factory=asyncio.Lock, repr=False)

    @property
    def member_ids(self) -> frozenset[str]:
        return frozenset(self.members)

    def summary(self) -> RoomSummary:
        return RoomSummary(
            id=self.id,
            name=self.name,
            description=self.description,
            participant_count=len(self.members),
            message_count=len(self.history),
        )


class RoomService:
    """Owns every room, its membership and its message history.

    Parameters
    ----------
    history_limit : int
        Maximum number of messages kept per room. Oldest are evicted first.
    max_name_length : int
        Maximum room name length in code points.
    """

    def __init__(self, history_limit: int = 100, max_name_length: int = 30):
        self.history_limit = history_limit
        self.max_name_length = max_name_length
        self._rooms: dict[str, Room] = {}
        self._lock = asyncio.Lock()
        self._bootstrapped = False

    def __len__(self) -> int:
        return len(self._rooms)

    def _new_room(
        self, room_id: str, name: str, description: str, created_by: str | None
    ) -> Room:
        return Room(
            id=room_id,
            name=name,
            description=description,
            created_by=created_by,
            created_at=now_ms(),
            history=collections.deque(maxlen=self.history_limit),
        )

    def bootstrap_defaults(self) -> bool:
        """Create the default rooms once per process if the store is empty.

        Returns
        -------
        bool
            True if the default rooms were created by this call.
        """
        if self._bootstrapped:
            return False
        self._bootstrapped = True
        if self._rooms:
            return False
        for room_id, name, description in DEFAULT_ROOMS:
            self._rooms[room_id] = self._new_room(room_id, name, description, None)
        log.info(f"Default rooms created: {', '.join(self._rooms)}")
        return True

    def _generate_room_id(self) -> str:
        while True:
            room_id = uuid.uuid4().hex[:9]
            if room_id not in self._rooms:
                return room_id

    async def create_room(
        self, name: str, description: str | None, creator_user_id: str
    ) -> RoomSummary:
        """Create an empty room.

        Parameters
        ----------
        name : str
            Room name. Stored trimmed; compared case-insensitively.
        description : str | None
            Optional description. Stored trimmed.
        creator_user_id : str
            User creating the room.

        Returns
        -------
        RoomSummary
            Summary of the new room, with zero participants and messages.

        Raises
        ------
        InvalidRequest
            If the name is empty or too long.
        RoomNameTaken
            If another room already has this name.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidRequest("Room name is required")
        if len(name) > self.max_name_length:
            raise InvalidRequest(
                f"Room name must be {self.max_name_length} characters or less"
            )
        description = (description or "").strip()

        async with self._lock:
            folded = name.casefold()
            if any(room.name.casefold() == folded for room in self._rooms.values()):
                raise RoomNameTaken()
            room = self._new_room(
                self._generate_room_id(), name, description, creator_user_id
            )
            self._rooms[room.id] = room

        log.info(f"Room created by {creator_user_id}: {room.name} ({room.id})")
        return room.summary()

    async def get_room(self, room_id: str) -> Room:
        """Look up a room.

        Raises
        ------
        RoomNotFound
            If no room has this id.
        """
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound()
        return room

    async def join(self, room_id: str, user_id: str) -> RoomSummary:
        """Add a user to a room. Idempotent.

        Raises
        ------
        RoomNotFound
            If no room has this id.
        """
        room = await self.get_room(room_id)
        async with room.lock:
            room.members.add(user_id)
            return room.summary()

    async def leave(self, room_id: str, user_id: str) -> bool:
        """Remove a user from a room's member set. No-op if it is not a member.

        Returns
        -------
        bool
            True if the user was a member.
        """
        room = self._rooms.get(room_id)
        if room is None:
            return False
        async with room.lock:
            if user_id not in room.members:
                return False
            room.members.discard(user_id)
            return True

    async def append_message(
        self,
        room_id: str,
        sender_user_id: str,
        sender_display_name: str,
        content: str,
    ) -> Message:
        """Store a message in a room's history, evicting beyond the cap.

        Raises
        ------
        InvalidRequest
            If the content is empty after trimming.
        RoomNotFound
            If no room has this id.
        """
        content = (content or "").strip()
        if not content:
            raise InvalidRequest("Message cannot be empty")
        room = await self.get_room(room_id)
        async with room.lock:
            message = Message(
                id=uuid.uuid4().hex,
                content=content,
                sender=sender_user_id,
                sender_name=sender_display_name,
                timestamp=now_ms(),
                room_id=room_id,
            )
            room.history.append(message)
        return message

    async def recent_messages(self, room_id: str, limit: int = 50) -> list[Message]:
        """Most recent ``limit`` messages, oldest first.

        Raises
        ------
        RoomNotFound
            If no room has this id.
        """
        room = await self.get_room(room_id)
        if limit <= 0:
            return []
        async with room.lock:
            return list(room.history)[-limit:]

    async def member_ids(self, room_id: str) -> frozenset[str]:
        """Snapshot of a room's member user ids. Empty for unknown rooms."""
        room = self._rooms.get(room_id)
        if room is None:
            return frozenset()
        async with room.lock:
            return room.member_ids

    async def summary(self, room_id: str) -> RoomSummary:
        room = await self.get_room(room_id)
        async with room.lock:
            return room.summary()

    async def list_summaries(self) -> list[RoomSummary]:
        """One summary per room, in creation order."""
        async with self._lock:
            rooms = list(self._rooms.values())
        summaries = []
        for room in rooms:
            async with room.lock:
                summaries.append(room.summary())
        return summaries
