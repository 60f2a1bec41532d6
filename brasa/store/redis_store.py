"""
Native Redis backend for the queue store.

Same command surface as the Upstash REST client, over a direct Redis
connection. Used for local development and self-hosted deployments where
REDIS_URL points at a plain Redis server.
"""

from typing import Dict, List, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from brasa.errors import StoreError


class RedisCommandStore:
    """Queue store backed by a redis.asyncio connection."""

    def __init__(self, url: Optional[str] = None, connection: Optional[aioredis.Redis] = None):
        if connection is None and not url:
            raise StoreError("RedisCommandStore requires a Redis URL or connection")

        self.url = url
        self._connection = connection

    @property
    def connection(self) -> aioredis.Redis:
        if self._connection is None:
            # rediss:// enables TLS automatically
            self._connection = aioredis.Redis.from_url(
                self.url,
                decode_responses=True,
                socket_timeout=10,
                socket_connect_timeout=10,
                health_check_interval=30,
            )
        return self._connection

    async def _run(self, command: str, coro):
        try:
            return await coro
        except RedisError as e:
            raise StoreError(f"Redis {command} failed: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        return await self._run("GET", self.connection.get(key))

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> Optional[str]:
        ok = await self._run("SET", self.connection.set(key, value, ex=ttl_seconds or None))
        return "OK" if ok else None

    async def delete(self, key: str) -> int:
        return int(await self._run("DEL", self.connection.delete(key)))

    async def incr(self, key: str) -> int:
        return int(await self._run("INCR", self.connection.incr(key)))

    async def expire(self, key: str, ttl_seconds: int) -> int:
        return int(bool(await self._run("EXPIRE", self.connection.expire(key, ttl_seconds))))

    async def zadd(self, key: str, score: float, member: str) -> int:
        return int(await self._run("ZADD", self.connection.zadd(key, {member: score})))

    async def zrange(self, key: str, start: int, stop: int) -> List[str]:
        return list(await self._run("ZRANGE", self.connection.zrange(key, start, stop)))

    async def zrem(self, key: str, member: str) -> int:
        return int(await self._run("ZREM", self.connection.zrem(key, member)))

    async def hset(self, key: str, mapping: Dict[str, str]) -> int:
        return int(await self._run("HSET", self.connection.hset(key, mapping=mapping)))

    async def hgetall(self, key: str) -> Optional[Dict[str, str]]:
        result = await self._run("HGETALL", self.connection.hgetall(key))
        return dict(result) if result else None

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.aclose()
            self._connection = None
