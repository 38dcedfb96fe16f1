"""Tests for connection handles and the registry."""

import pytest

from roomrelay.connections import ConnectionRegistry
from roomrelay.exceptions import TransportError
from roomrelay.socket_events import ErrorEvent


def test_registry_tracks_connections(make_connection):
    registry = ConnectionRegistry()
    first = registry.add(make_connection("a"))
    second = registry.add(make_connection("b"))

    assert len(registry) == 2
    assert "a" in registry
    assert registry.get("b") is second
    assert list(registry) == [first, second]

    assert registry.remove("a") is first
    assert registry.remove("a") is None
    assert registry.snapshot() == [second]


def test_registry_rejects_duplicate_sid(make_connection):
    registry = ConnectionRegistry()
    registry.add(make_connection("a"))

    with pytest.raises(ValueError, match="already registered"):
        registry.add(make_connection("a"))


def test_generated_sids_are_unique(make_connection):
    assert make_connection().sid != make_connection().sid


@pytest.mark.asyncio
async def test_send_writes_envelope_parts(make_connection):
    connection = make_connection()

    await connection.send(ErrorEvent(message="boom"))

    assert connection.sent == [("error", {"message": "boom"})]


@pytest.mark.asyncio
async def test_send_on_closed_connection_raises(make_connection):
    connection = make_connection()
    connection.mark_closed()

    with pytest.raises(TransportError):
        await connection.send(ErrorEvent(message="boom"))
    assert connection.sent == []


@pytest.mark.asyncio
async def test_failed_write_closes_connection(make_connection):
    connection = make_connection(fail_writes=True)

    with pytest.raises(TransportError, match="peer went away"):
        await connection.send(ErrorEvent(message="boom"))

    assert connection.closed
    assert not connection.alive
