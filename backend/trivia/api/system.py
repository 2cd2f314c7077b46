from __future__ import annotations

from fastapi import APIRouter

from trivia.database import ping_db
from trivia.redis_cache import is_redis_configured, ping_redis
from trivia.runtime import runtime

router = APIRouter(tags=["system"])


@router.get("/api/health")
async def health() -> dict[str, object]:
    db_ok = await ping_db()
    redis_ok = await ping_redis() if is_redis_configured() else False
    redis_status = "disabled" if not is_redis_configured() else ("up" if redis_ok else "down")
    ws_stats = runtime.get_ws_stats()
    ws_summary = {
        "activeConnections": ws_stats["stats"].get("activeConnections", 0),
        "peakConnections": ws_stats["stats"].get("peakConnections", 0),
    }
    return {
        "ok": db_ok,
        "database": "up" if db_ok else "down",
        "redis": redis_status,
        "activeRooms": runtime.active_rooms_count,
        "websocket": ws_summary,
    }


@router.get("/api/ws-stats")
async def websocket_stats() -> dict[str, object]:
    return runtime.get_ws_stats()
