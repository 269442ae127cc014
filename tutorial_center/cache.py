import json
import logging

import redis.asyncio as redis

from tutorial_center.config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    """
    JSON cache in Redis for read-mostly lookups (currently tags).

    Every method tolerates a missing or failing Redis: reads report a miss
    and writes are skipped, leaving callers on the database path.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    async def connect(self, url: str | None = None) -> None:
        """Open the client and ping it; an unreachable server disables caching."""
        url = url or settings.REDIS_URL
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except Exception as exc:
            logger.warning("Redis unavailable at %s, caching off: %s", url, exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Redis connected: %s", url)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def get(self, key: str) -> dict | list | None:
        """Decoded value stored under *key*; None on a miss or a Redis error."""
        if not self._redis:
            return None
        try:
            raw = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Cache read failed for %r: %s", key, exc)
            return None
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache write failed for %r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Remove every key matching *pattern*, walking the keyspace with SCAN."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Dropped %d cached key(s) for %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache purge failed for %r: %s", pattern, exc)

    async def invalidate_tags(self) -> None:
        """Drop the tag list and every per-tag entry after a tag write."""
        await self.delete_pattern("tags:*")


cache = CacheManager()
