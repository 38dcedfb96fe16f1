"""roomrelay: real-time chat room relay with presence and message fan-out."""

import importlib.metadata

__version__ = importlib.metadata.version("roomrelay")

from roomrelay.app import create_app, create_asgi_app  # noqa: E402
from roomrelay.server import RelayServer  # noqa: E402

__all__ = ["RelayServer", "create_app", "create_asgi_app"]
