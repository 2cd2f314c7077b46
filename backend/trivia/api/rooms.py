from __future__ import annotations

from fastapi import APIRouter, HTTPException

from trivia.runtime import runtime
from trivia.runtime_utils import now_ms

router = APIRouter(tags=["rooms"])


@router.get("/api/trivia/room/{room_code}")
async def room_info(room_code: str) -> dict[str, object]:
    summary = runtime.room_summary(room_code)
    if summary is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return summary


@router.get("/api/trivia/active-rooms")
async def active_rooms() -> dict[str, object]:
    stats = runtime.get_ws_stats()
    return {
        "success": True,
        "activeRooms": stats["activeRooms"],
        "totalPlayers": stats["totalPlayers"],
        "rooms": stats["rooms"],
        "generatedAt": now_ms(),
    }
