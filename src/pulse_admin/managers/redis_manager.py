"""
# Redis Manager

Async Redis access for the service. Redis is the persisted cache store behind the
admin challenge list: a plain string-keyed blob store (`get` / `set` / `delete`).

The client is created lazily on first use and shared for the process lifetime.

```python
from pulse_admin.managers.redis_manager import redis_manager

await redis_manager.set("adminAllChallengesCache", payload)
payload = await redis_manager.get("adminAllChallengesCache")
```
"""

from typing import Optional

import redis.asyncio as redis

from pulse_admin.config import settings
from pulse_admin.managers.logging_manager import get_logger

logger = get_logger(prefix="[REDIS]")


class RedisManager:
    """Lazily connected async Redis client with blob-store helpers."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self._client: Optional[redis.Redis] = None

    async def get_redis(self) -> redis.Redis:
        if self._client is None:
            logger.info("Creating Redis client for %s", self.url)
            self._client = redis.from_url(self.url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> Optional[str]:
        client = await self.get_redis()
        return await client.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store `value` under `key`; a positive `ttl` (seconds) makes it expire."""
        client = await self.get_redis()
        if ttl:
            await client.setex(key, ttl, value)
        else:
            await client.set(key, value)

    async def delete(self, key: str) -> None:
        client = await self.get_redis()
        await client.delete(key)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis client closed")


# Global instance
redis_manager = RedisManager()
