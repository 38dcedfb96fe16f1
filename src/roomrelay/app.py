"""ASGI application factories."""

import logging

import socketio
from fastapi import FastAPI

import roomrelay
from roomrelay.config import RelayConfig, get_config
from roomrelay.routes import router
from roomrelay.server import RelayServer
from roomrelay.socketio import create_socketio_server
from roomrelay.websocket import websocket_endpoint

log = logging.getLogger(__name__)


def configure_logging(config: RelayConfig) -> None:
    log_level = getattr(logging, config.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    log.info(f"Logging configured at level: {config.log_level}")


def create_app(config: RelayConfig | None = None) -> FastAPI:
    """Create the FastAPI application with a fresh relay.

    Parameters
    ----------
    config : RelayConfig | None
        Configuration object. If None, loads from environment via get_config().

    Returns
    -------
    FastAPI
        Application serving the HTTP routes and the raw WebSocket endpoint.
        The relay is available as ``app.state.relay``.
    """
    if config is None:
        config = get_config()
    configure_logging(config)

    app = FastAPI(title="roomrelay", version=roomrelay.__version__)
    app.state.config = config
    app.state.relay = RelayServer(config)
    app.include_router(router)
    app.add_api_websocket_route(config.websocket_path, websocket_endpoint)
    return app


def create_asgi_app(config: RelayConfig | None = None):
    """Create the served ASGI application.

    Wraps the FastAPI app with the Socket.IO transport when enabled. Both
    transports share one relay, so clients on either see the same rooms.
    """
    if config is None:
        config = get_config()
    app = create_app(config)
    if not config.socketio_enabled:
        return app

    origins: str | list[str] = config.cors_allowed_origins
    if origins != "*":
        origins = [origin.strip() for origin in origins.split(",") if origin.strip()]
    sio = create_socketio_server(app.state.relay, cors_allowed_origins=origins)
    app.state.sio = sio
    log.info("Socket.IO transport mounted at /socket.io")
    return socketio.ASGIApp(sio, other_asgi_app=app)
