import os

import pytest

from roomrelay.config import RelayConfig
from roomrelay.connections import Connection
from roomrelay.server import RelayServer
from roomrelay.services import PresenceService, RoomService


class FakeConnection(Connection):
    """In-memory connection recording every event written to it."""

    def __init__(self, sid: str | None = None, fail_writes: bool = False):
        super().__init__(sid)
        self.sent: list[tuple[str, dict]] = []
        self.fail_writes = fail_writes

    async def _write(self, event_type: str, data: dict) -> None:
        if self.fail_writes:
            raise ConnectionResetError("peer went away")
        self.sent.append((event_type, data))

    def events(self, event_type: str) -> list[dict]:
        """Payloads of every recorded event of one type, oldest first."""
        return [data for sent_type, data in self.sent if sent_type == event_type]

    def types(self) -> list[str]:
        return [sent_type for sent_type, _ in self.sent]

    def last(self, event_type: str) -> dict:
        events = self.events(event_type)
        assert events, f"no {event_type} event in {self.types()}"
        return events[-1]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def make_connection():
    """Factory for fake connections."""
    return FakeConnection


@pytest.fixture
def config():
    return RelayConfig(server_port=8080, log_level="INFO")


@pytest.fixture
def relay(config):
    """A relay with default rooms and no connections."""
    return RelayServer(config)


@pytest.fixture
def room_service():
    service = RoomService()
    service.bootstrap_defaults()
    return service


@pytest.fixture
def presence_service():
    return PresenceService()


async def connect_client(
    relay: RelayServer,
    user_id: str | None = None,
    username: str | None = None,
    sid: str | None = None,
) -> FakeConnection:
    """Connect a fake client and optionally authenticate it."""
    connection = FakeConnection(sid)
    await relay.on_connect(connection)
    if user_id is not None:
        await relay.on_message(
            connection,
            {"type": "authenticate", "data": {"userId": user_id, "username": username}},
        )
    return connection


async def send(relay: RelayServer, connection: Connection, type_: str, **data) -> None:
    await relay.on_message(connection, {"type": type_, "data": data})


@pytest.fixture
def clean_env(monkeypatch):
    """Strip roomrelay variables from the environment and reset the config singleton."""
    from roomrelay import config as config_module

    for key in list(os.environ):
        if key.startswith("ROOMRELAY_") or key == "PORT":
            monkeypatch.delenv(key)
    monkeypatch.setattr(config_module, "_config", None)
