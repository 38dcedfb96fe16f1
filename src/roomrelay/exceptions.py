"""roomrelay exception classes.

The message of every exception except ``TransportError`` is client facing: the
dispatcher sends it verbatim in an ``error`` event to the originating
connection.
"""


class RoomRelayException(Exception):
    """Base exception for all roomrelay errors."""


class InvalidRequest(RoomRelayException):
    """Raised when a command carries invalid values (empty name, empty message)."""


class NotAuthenticated(InvalidRequest):
    """Raised when a command requires an authenticated session."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class NotInRoom(InvalidRequest):
    """Raised when a command requires the session to be in a room."""

    def __init__(self, message: str = "Not in a room"):
        super().__init__(message)


class RoomNotFound(RoomRelayException):
    """Raised when a room id does not exist."""

    def __init__(self, message: str = "Room not found"):
        super().__init__(message)


class ConflictError(RoomRelayException):
    """Raised when a request collides with existing state."""


class RoomNameTaken(ConflictError):
    """Raised when a room name is already used (case-insensitive)."""

    def __init__(self, message: str = "Room name already exists"):
        super().__init__(message)


class UsernameTaken(ConflictError):
    """Raised when a display name is bound to a different online user."""

    def __init__(self, message: str = "Username is already taken"):
        super().__init__(message)


class ProtocolError(RoomRelayException):
    """Raised for malformed envelopes and unknown command types."""


class TransportError(RoomRelayException):
    """Raised when writing to a connection fails. Never reported to clients."""
