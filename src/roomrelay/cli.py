import typer
import uvicorn

from roomrelay import __version__
from roomrelay.app import create_asgi_app
from roomrelay.config import VALID_LOG_LEVELS, get_config

app = typer.Typer()


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"roomrelay {__version__}")
        raise typer.Exit()


@app.command()
def main(
    host: str | None = typer.Option(
        None, help="Bind address. Defaults to ROOMRELAY_SERVER_HOST or 0.0.0.0."
    ),
    port: int | None = typer.Option(
        None, help="Listening port. Defaults to ROOMRELAY_SERVER_PORT, PORT or 8080."
    ),
    log_level: str | None = typer.Option(
        None, help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    ),
    socketio: bool = typer.Option(
        True, "--socketio/--no-socketio", help="Mount the Socket.IO transport."
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Start the chat room relay server."""
    config = get_config()
    if host is not None:
        config.server_host = host
    if port is not None:
        if not 1 <= port <= 65535:
            typer.echo(f"✗ Invalid port number: {port}", err=True)
            raise typer.Exit(code=1)
        config.server_port = port
    if log_level is not None:
        if log_level.upper() not in VALID_LOG_LEVELS:
            typer.echo(f"✗ Invalid log level: {log_level}", err=True)
            raise typer.Exit(code=1)
        config.log_level = log_level.upper()
    config.socketio_enabled = socketio

    asgi_app = create_asgi_app(config)

    typer.echo(
        f"✓ roomrelay listening on ws://{config.server_host}:{config.server_port}"
        f"{config.websocket_path}"
    )
    uvicorn.run(
        asgi_app,
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
    )
