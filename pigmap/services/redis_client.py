"""
Redis client for the coordinator's durable cache snapshot.

- One shared asyncio client per process, created lazily from settings.REDIS_URL.
- The coordinator overwrites a single JSON blob on every publish and reads it
  back once at startup.
"""
import logging
from typing import Optional

import redis.asyncio as redis

from pigmap.core.config import settings

logger = logging.getLogger("pigmap.redis")

_redis: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


class RedisSnapshotStore:
    """Key-value snapshot store backed by plain Redis GET/SET (no expiry)."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self._client = client

    async def _conn(self) -> redis.Redis:
        if self._client is None:
            self._client = await get_redis()
        return self._client

    async def get(self, key: str) -> Optional[str]:
        r = await self._conn()
        return await r.get(key)

    async def put(self, key: str, value: str) -> None:
        r = await self._conn()
        await r.set(key, value)
        logger.debug("snapshot %s written (%d bytes)", key, len(value))

    async def ping(self) -> bool:
        r = await self._conn()
        return bool(await r.ping())
