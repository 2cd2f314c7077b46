from __future__ import annotations

from typing import Any, Literal

import asyncpg

LeaderboardPeriod = Literal["all", "today", "week"]

_PERIOD_FILTERS: dict[str, str] = {
    "today": " AND g.completed_at >= CURRENT_DATE",
    "week": " AND g.completed_at >= CURRENT_DATE - INTERVAL '7 days'",
}


async def insert_room(
    pool: asyncpg.Pool,
    *,
    room_code: str,
    host_id: str,
    host_name: str,
    category: str,
    venue_id: str | None,
) -> None:
    async with pool.acquire() as conn:
        await conn.execute(
            """
            INSERT INTO trivia_rooms (room_code, host_id, host_name, category, venue_id)
            VALUES ($1, $2, $3, $4, $5)
            """,
            room_code,
            host_id,
            host_name,
            category,
            venue_id,
        )


async def insert_player(
    pool: asyncpg.Pool,
    *,
    room_code: str,
    player_id: str,
    player_name: str,
) -> None:
    async with pool.acquire() as conn:
        await conn.execute(
            """
            INSERT INTO trivia_players (room_code, player_id, player_name)
            VALUES ($1, $2, $3)
            """,
            room_code,
            player_id,
            player_name,
        )


async def save_game_result(
    pool: asyncpg.Pool,
    *,
    room_code: str,
    category: str,
    total_questions: int,
    scores: list[dict[str, Any]],
) -> int:
    async with pool.acquire() as conn:
        async with conn.transaction():
            game_id = await conn.fetchval(
                """
                INSERT INTO trivia_games (room_code, category, total_questions, completed_at)
                VALUES ($1, $2, $3, NOW())
                RETURNING id
                """,
                room_code,
                category,
                int(total_questions),
            )
            await conn.executemany(
                """
                INSERT INTO trivia_scores (game_id, player_id, player_name, score, rank)
                VALUES ($1, $2, $3, $4, $5)
                """,
                [
                    (
                        game_id,
                        str(row["playerId"]),
                        str(row["name"]),
                        int(row["score"]),
                        int(row["rank"]),
                    )
                    for row in scores
                ],
            )
            await conn.execute(
                """
                UPDATE trivia_rooms SET completed_at = NOW()
                WHERE room_code = $1 AND completed_at IS NULL
                """,
                room_code,
            )
    return int(game_id)


async def mark_room_closed(pool: asyncpg.Pool, room_code: str) -> None:
    async with pool.acquire() as conn:
        await conn.execute(
            """
            UPDATE trivia_rooms SET closed_at = NOW()
            WHERE room_code = $1 AND closed_at IS NULL
            """,
            room_code,
        )


def build_leaderboard_query(
    category: str | None,
    period: LeaderboardPeriod,
    limit: int,
) -> tuple[str, list[Any]]:
    query = """
        SELECT
          s.player_name,
          MAX(s.score) AS best_score,
          COUNT(*) AS games_played,
          AVG(s.score) AS avg_score
        FROM trivia_scores s
        JOIN trivia_games g ON s.game_id = g.id
        WHERE 1=1
    """
    params: list[Any] = []

    if category and category != "all":
        params.append(category)
        query += f" AND g.category = ${len(params)}"

    query += _PERIOD_FILTERS.get(period, "")

    params.append(int(limit))
    query += f"""
        GROUP BY s.player_name
        ORDER BY best_score DESC
        LIMIT ${len(params)}
    """
    return query, params


async def fetch_leaderboard(
    pool: asyncpg.Pool,
    *,
    category: str | None,
    period: LeaderboardPeriod,
    limit: int,
) -> list[dict[str, Any]]:
    query, params = build_leaderboard_query(category, period, limit)
    async with pool.acquire() as conn:
        rows = await conn.fetch(query, *params)

    return [
        {
            "player_name": row["player_name"],
            "best_score": int(row["best_score"] or 0),
            "games_played": int(row["games_played"] or 0),
            "avg_score": round(float(row["avg_score"] or 0), 2),
        }
        for row in rows
    ]


async def fetch_player_stats(pool: asyncpg.Pool, player_name: str) -> dict[str, Any]:
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            SELECT
              COUNT(*) AS total_games,
              MAX(score) AS best_score,
              AVG(score) AS avg_score,
              COUNT(*) FILTER (WHERE rank = 1) AS wins
            FROM trivia_scores
            WHERE player_name = $1
            """,
            player_name,
        )

    if row is None:
        return {"total_games": 0, "best_score": 0, "avg_score": 0, "wins": 0}

    return {
        "total_games": int(row["total_games"] or 0),
        "best_score": int(row["best_score"] or 0),
        "avg_score": round(float(row["avg_score"] or 0), 2),
        "wins": int(row["wins"] or 0),
    }
