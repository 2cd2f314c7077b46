from __future__ import annotations

import logging
from typing import cast

from fastapi import APIRouter, HTTPException, Query

from trivia.database import fetch_leaderboard, fetch_player_stats
from trivia.database_games import LeaderboardPeriod

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stats"])


@router.get("/api/trivia/leaderboard")
async def leaderboard(
    category: str | None = Query(default=None, max_length=40),
    limit: int = Query(default=10, ge=1, le=100),
    period: str = Query(default="all", pattern="^(all|today|week)$"),
) -> dict[str, object]:
    normalized_category = (category or "").strip().lower() or None
    try:
        rows = await fetch_leaderboard(
            category=normalized_category,
            period=cast(LeaderboardPeriod, period),
            limit=limit,
        )
    except Exception as exc:
        logger.exception("Failed to load leaderboard")
        raise HTTPException(status_code=500, detail="Failed to fetch leaderboard") from exc

    return {
        "success": True,
        "category": normalized_category or "all",
        "period": period,
        "leaderboard": rows,
    }


@router.get("/api/trivia/stats/{player_name}")
async def player_stats(player_name: str) -> dict[str, object]:
    name = player_name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Player name is required")
    try:
        stats = await fetch_player_stats(name)
    except Exception as exc:
        logger.exception("Failed to load stats for %s", name)
        raise HTTPException(status_code=500, detail="Failed to fetch player stats") from exc

    return {"success": True, "playerName": name, "stats": stats}
