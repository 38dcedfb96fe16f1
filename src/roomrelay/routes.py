"""HTTP routes: health check and read-only snapshots of relay state."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

import roomrelay
from roomrelay.server import RelayServer
from roomrelay.socket_events import OnlineUsers, RoomList

router = APIRouter()


def get_relay(request: Request) -> RelayServer:
    return request.app.state.relay


RelayDep = Annotated[RelayServer, Depends(get_relay)]


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    connections: int


@router.get("/health", tags=["utility"])
async def health(relay: RelayDep) -> HealthResponse:
    return HealthResponse(version=roomrelay.__version__, connections=len(relay.connections))


@router.get("/v1/rooms", tags=["rooms"], response_model_by_alias=True)
async def list_rooms(relay: RelayDep) -> RoomList:
    """Current room summaries."""
    return RoomList(rooms=await relay.rooms.list_summaries())


@router.get("/v1/users/online", tags=["users"], response_model_by_alias=True)
async def list_online_users(relay: RelayDep) -> OnlineUsers:
    """Users with at least one live connection."""
    return OnlineUsers(users=await relay.presence.list_online())
