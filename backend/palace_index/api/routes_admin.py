"""Administrative routes for the palace index."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from palace_index.api.dependencies import get_butler
from palace_index.api.errors import to_http_exception
from palace_index.core.errors import PalaceError
from palace_index.core.metrics import metrics_response
from palace_index.core.workspace import Room
from palace_index.models.dto import RoomModel
from palace_index.retrieval import Butler

router = APIRouter()


@router.get("/rooms", response_model=list[RoomModel], summary="List curated rooms")
async def list_rooms(butler: Butler = Depends(get_butler)) -> list[RoomModel]:
    return [_room_model(room) for room in butler.list_rooms()]


@router.get("/rooms/{name}", response_model=RoomModel, summary="Read one curated room")
async def read_room(name: str, butler: Butler = Depends(get_butler)) -> RoomModel:
    try:
        room = butler.read_room(name)
    except PalaceError as exc:
        raise to_http_exception(exc) from exc
    return _room_model(room)


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


def _room_model(room: Room) -> RoomModel:
    return RoomModel(
        name=room.name,
        summary=room.summary,
        entry_points=room.entry_points,
        capabilities=room.capabilities,
    )


__all__ = ["router"]
