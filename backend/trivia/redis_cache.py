from __future__ import annotations

import json
import logging
from typing import Any

from redis.asyncio import Redis
from redis.asyncio import from_url as redis_from_url

from .config import settings

logger = logging.getLogger(__name__)

LEADERBOARD_KEY_PREFIX = "trivia:leaderboard:"

_redis: Redis | None = None


def is_redis_configured() -> bool:
    return bool(settings.redis_url)


def is_redis_connected() -> bool:
    return _redis is not None


def leaderboard_key(*, category: str | None, period: str, limit: int) -> str:
    category_part = (category or "all").strip().lower()[:40] or "all"
    return f"{LEADERBOARD_KEY_PREFIX}{category_part}:{period}:{int(limit)}"


async def init_redis() -> bool:
    global _redis
    if _redis is not None:
        return True

    if not settings.redis_url:
        logger.info("Redis URL is not configured, leaderboard cache disabled")
        return False

    client = redis_from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except Exception:
        logger.exception("Failed to connect to Redis %s", settings.redis_url)
        try:
            await client.aclose()
        except Exception:
            logger.debug("Redis client close failed after ping error", exc_info=True)
        return False

    _redis = client
    logger.info("Redis cache connected")
    return True


async def close_redis() -> None:
    global _redis
    if _redis is None:
        return
    try:
        await _redis.aclose()
    finally:
        _redis = None


async def ping_redis() -> bool:
    if _redis is None:
        return False
    try:
        await _redis.ping()
        return True
    except Exception:
        logger.exception("Redis ping failed")
        return False


async def get_cached_leaderboard(
    *,
    category: str | None,
    period: str,
    limit: int,
) -> list[dict[str, Any]] | None:
    if _redis is None:
        return None
    key = leaderboard_key(category=category, period=period, limit=limit)
    try:
        raw = await _redis.get(key)
    except Exception:
        logger.exception("Redis get failed for key %s", key)
        return None
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, list):
        return None
    return payload


async def set_cached_leaderboard(
    rows: list[dict[str, Any]],
    *,
    category: str | None,
    period: str,
    limit: int,
) -> None:
    if _redis is None:
        return
    key = leaderboard_key(category=category, period=period, limit=limit)
    try:
        await _redis.set(
            key,
            json.dumps(rows, ensure_ascii=False),
            ex=max(5, int(settings.leaderboard_cache_ttl_seconds)),
        )
    except Exception:
        logger.exception("Redis set failed for key %s", key)


async def invalidate_leaderboards() -> None:
    if _redis is None:
        return
    try:
        keys = [key async for key in _redis.scan_iter(match=f"{LEADERBOARD_KEY_PREFIX}*")]
        if keys:
            await _redis.delete(*keys)
    except Exception:
        logger.exception("Redis leaderboard invalidation failed")
