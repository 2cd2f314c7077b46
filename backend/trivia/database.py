from __future__ import annotations

import logging
from typing import Any

import asyncpg

from .config import settings
from .database_games import LeaderboardPeriod
from .database_games import (
    fetch_leaderboard as fetch_leaderboard_impl,
    fetch_player_stats as fetch_player_stats_impl,
    insert_player as insert_player_impl,
    insert_room as insert_room_impl,
    mark_room_closed as mark_room_closed_impl,
    save_game_result as save_game_result_impl,
)
from .models import schema_statements
from .redis_cache import get_cached_leaderboard, invalidate_leaderboards, set_cached_leaderboard

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


def _normalized_database_url() -> str:
    url = settings.database_url.strip()
    if url.startswith("postgresql+asyncpg://"):
        return "postgresql://" + url[len("postgresql+asyncpg://") :]
    return url


async def _get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(dsn=_normalized_database_url(), min_size=1, max_size=10)
    return _pool


async def init_db() -> None:
    pool = await _get_pool()
    async with pool.acquire() as conn:
        for statement in schema_statements():
            await conn.execute(statement)


async def close_db() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def ping_db() -> bool:
    try:
        pool = await _get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        return True
    except Exception:  # pragma: no cover
        logger.exception("Database ping failed")
        return False


async def insert_room(
    room_code: str,
    host_id: str,
    host_name: str,
    category: str,
    venue_id: str | None,
) -> None:
    pool = await _get_pool()
    await insert_room_impl(
        pool,
        room_code=room_code,
        host_id=host_id,
        host_name=host_name,
        category=category,
        venue_id=venue_id,
    )


async def insert_player(room_code: str, player_id: str, player_name: str) -> None:
    pool = await _get_pool()
    await insert_player_impl(pool, room_code=room_code, player_id=player_id, player_name=player_name)


async def save_game_result(
    room_code: str,
    category: str,
    total_questions: int,
    scores: list[dict[str, Any]],
) -> int:
    pool = await _get_pool()
    game_id = await save_game_result_impl(
        pool,
        room_code=room_code,
        category=category,
        total_questions=total_questions,
        scores=scores,
    )
    await invalidate_leaderboards()
    return game_id


async def mark_room_closed(room_code: str) -> None:
    pool = await _get_pool()
    await mark_room_closed_impl(pool, room_code)


async def fetch_leaderboard(
    category: str | None,
    period: LeaderboardPeriod,
    limit: int,
) -> list[dict[str, Any]]:
    cached = await get_cached_leaderboard(category=category, period=period, limit=limit)
    if cached is not None:
        return cached

    pool = await _get_pool()
    rows = await fetch_leaderboard_impl(pool, category=category, period=period, limit=limit)
    await set_cached_leaderboard(rows, category=category, period=period, limit=limit)
    return rows


async def fetch_player_stats(player_name: str) -> dict[str, Any]:
    pool = await _get_pool()
    return await fetch_player_stats_impl(pool, player_name)
