"""Service layer for presence and room state."""

from .presence_service import PresenceService, User
from .room_service import DEFAULT_ROOMS, Room, RoomService

__all__ = [
    "DEFAULT_ROOMS",
    "PresenceService",
    "Room",
    "RoomService",
    "User",
]
