"""
Schema generation, leaderboard SQL and Redis key helpers; no live services.
"""
from __future__ import annotations

from trivia.database import _normalized_database_url
from trivia.database_games import build_leaderboard_query
from trivia.models import schema_statements
from trivia.redis_cache import leaderboard_key


def test_schema_statements_are_idempotent_ddl():
    statements = schema_statements()
    tables = [s for s in statements if s.startswith("CREATE TABLE")]

    assert all("IF NOT EXISTS" in s for s in statements)
    names = [s.split()[5] for s in tables]
    assert names.index("trivia_games") < names.index("trivia_scores")
    assert set(names) == {"trivia_rooms", "trivia_players", "trivia_games", "trivia_scores"}
    assert any("REFERENCES trivia_games" in s for s in tables)


def test_leaderboard_query_all_time():
    sql, params = build_leaderboard_query(None, "all", 10)
    assert params == [10]
    assert "g.category" not in sql
    assert "LIMIT $1" in sql


def test_leaderboard_query_with_category_and_period():
    sql, params = build_leaderboard_query("sports", "today", 25)
    assert params == ["sports", 25]
    assert "g.category = $1" in sql
    assert "CURRENT_DATE" in sql
    assert "LIMIT $2" in sql


def test_leaderboard_query_treats_all_category_as_unfiltered():
    sql, params = build_leaderboard_query("all", "week", 5)
    assert params == [5]
    assert "INTERVAL '7 days'" in sql


def test_leaderboard_cache_key():
    assert leaderboard_key(category=None, period="all", limit=10) == "trivia:leaderboard:all:all:10"
    assert leaderboard_key(category="Food", period="week", limit=3) == "trivia:leaderboard:food:week:3"


def test_database_url_driver_prefix_is_stripped(monkeypatch):
    from trivia import database

    monkeypatch.setattr(database.settings, "database_url", "postgresql+asyncpg://u:p@db:5432/trivia")
    assert _normalized_database_url() == "postgresql://u:p@db:5432/trivia"
