"""Tests for the HTTP routes."""

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from conftest import connect_client, send
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

import roomrelay
from roomrelay.app import create_app


@pytest.fixture
def app(config) -> FastAPI:
    return create_app(config)


@pytest_asyncio.fixture(name="http")
async def http_fixture(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Async test client talking to the app in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.mark.asyncio
async def test_health(app, http):
    await connect_client(app.state.relay)

    response = await http.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "version": roomrelay.__version__,
        "connections": 1,
    }


@pytest.mark.asyncio
async def test_list_rooms(app, http):
    alice = await connect_client(app.state.relay, "u1", "Alice")
    await send(app.state.relay, alice, "join_room", roomId="general")
    await send(app.state.relay, alice, "send_message", content="hi")

    response = await http.get("/v1/rooms")

    assert response.status_code == 200
    rooms = response.json()["rooms"]
    assert rooms[0] == {
        "id": "general",
        "name": "General",
        "description": "General discussion room",
        "participantCount": 1,
        "messageCount": 1,
    }
    assert [room["id"] for room in rooms] == ["general", "random", "help"]


@pytest.mark.asyncio
async def test_list_online_users(app, http):
    relay = app.state.relay
    alice = await connect_client(relay, "u1", "Alice")
    await connect_client(relay, "u2", "Bob")
    await relay.on_disconnect(alice)

    response = await http.get("/v1/users/online")

    assert response.status_code == 200
    assert response.json() == {"users": [{"userId": "u2", "username": "Bob"}]}
