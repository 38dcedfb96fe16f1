"""Centralized configuration management for roomrelay.

Reads from environment variables with sensible defaults.
The CLI, the app factory and the stores all read from this module.

Environment variables follow the pattern ROOMRELAY_*. The plain ``PORT``
variable is honoured as a fallback for the listening port.

Example:
    >>> from roomrelay.config import get_config
    >>> config = get_config()
    >>> print(config.server_port)
    8080
"""

import logging
import os
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(value: str) -> bool:
    """Parse boolean from environment variable string."""
    return value.lower() in ("true", "1", "yes", "on")


def _getenv_int(key: str, default: int) -> int:
    """Get integer from environment with fallback to default."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        log.warning(f"Invalid integer value for {key}={value}, using default {default}")
        return default


@dataclass
class RelayConfig:
    """roomrelay configuration loaded from environment variables.

    All fields have defaults that work for local development.

    Attributes
    ----------
    server_host : str
        Server bind host address.
    server_port : int
        Server bind port number.
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    history_limit : int
        Maximum number of messages retained per room. Oldest are evicted.
    recent_messages : int
        Number of most recent messages sent on join and room sync.
    max_room_name_length : int
        Maximum room name length in code points.
    websocket_path : str
        Path of the raw WebSocket endpoint.
    socketio_enabled : bool
        Mount the Socket.IO transport next to the raw WebSocket endpoint.
    cors_allowed_origins : str
        Allowed origins for the Socket.IO transport.
    """

    server_host: str = field(
        default_factory=lambda: os.getenv("ROOMRELAY_SERVER_HOST", "0.0.0.0")
    )
    server_port: int = field(
        default_factory=lambda: _getenv_int(
            "ROOMRELAY_SERVER_PORT", _getenv_int("PORT", 8080)
        )
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.getenv("ROOMRELAY_LOG_LEVEL", "INFO")
    )

    # Rooms
    history_limit: int = field(
        default_factory=lambda: _getenv_int("ROOMRELAY_HISTORY_LIMIT", 100)
    )
    recent_messages: int = field(
        default_factory=lambda: _getenv_int("ROOMRELAY_RECENT_MESSAGES", 50)
    )
    max_room_name_length: int = field(
        default_factory=lambda: _getenv_int("ROOMRELAY_MAX_ROOM_NAME_LENGTH", 30)
    )

    # Transports
    websocket_path: str = field(
        default_factory=lambda: os.getenv("ROOMRELAY_WEBSOCKET_PATH", "/ws")
    )
    socketio_enabled: bool = field(
        default_factory=lambda: _parse_bool(
            os.getenv("ROOMRELAY_SOCKETIO_ENABLED", "true")
        )
    )
    cors_allowed_origins: str = field(
        default_factory=lambda: os.getenv("ROOMRELAY_CORS_ALLOWED_ORIGINS", "*")
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()
        self._log_config()

    def _validate(self):
        """Validate configuration values.

        Raises
        ------
        ValueError
            If configuration is invalid.
        """
        if not 1 <= self.server_port <= 65535:
            raise ValueError(
                f"Invalid port number: {self.server_port}. Must be between 1 and 65535"
            )

        if self.history_limit < 1:
            raise ValueError(
                f"Invalid history limit: {self.history_limit}. Must be at least 1"
            )

        if not 1 <= self.recent_messages <= self.history_limit:
            raise ValueError(
                f"Invalid recent message count: {self.recent_messages}. "
                f"Must be between 1 and the history limit ({self.history_limit})"
            )

        if self.max_room_name_length < 1:
            raise ValueError(
                f"Invalid max room name length: {self.max_room_name_length}"
            )

        if not self.websocket_path.startswith("/"):
            raise ValueError(
                f"Invalid websocket path: {self.websocket_path!r}. Must start with '/'"
            )

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            log.warning(
                f"Invalid log level '{self.log_level}', using WARNING. "
                f"Valid levels: {', '.join(VALID_LOG_LEVELS)}"
            )
            self.log_level = "WARNING"

    def _log_config(self):
        """Log configuration for debugging."""
        log.info("roomrelay configuration:")
        log.info(f"  Server: {self.server_host}:{self.server_port}")
        log.info(f"  Log Level: {self.log_level}")
        log.info(f"  History Limit: {self.history_limit} messages per room")
        log.info(f"  Recent Messages: {self.recent_messages}")
        log.info(f"  WebSocket Path: {self.websocket_path}")
        log.info(
            f"  Socket.IO: {'Enabled' if self.socketio_enabled else 'Disabled'}"
        )


# Global config instance (singleton pattern)
_config: RelayConfig | None = None


def get_config() -> RelayConfig:
    """Get or create the global configuration instance.

    Returns
    -------
    RelayConfig
        Global configuration instance loaded from environment variables.
    """
    global _config
    if _config is None:
        _config = RelayConfig()
    return _config


def reload_config() -> RelayConfig:
    """Reload configuration from environment.

    Useful for testing or when environment variables change at runtime.

    Returns
    -------
    RelayConfig
        Newly created configuration instance.
    """
    global _config
    _config = RelayConfig()
    return _config
