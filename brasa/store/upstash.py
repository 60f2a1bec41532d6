"""
Upstash Redis REST client.

Every command is sent as a single POST whose JSON body is the ordered command
array (["SET", key, value, "EX", ttl]). The response body is
{"result": ..., "error"?: ...}; a present error always raises.
"""

from typing import Any, Dict, List, Optional, Sequence

import httpx

from brasa.errors import StoreError


class UpstashRedis:
    """
    Async command client for the Upstash REST API.

    Usage:
        store = UpstashRedis(url, token)
        await store.set("greeting", "hello", ttl_seconds=60)
        value = await store.get("greeting")
    """

    def __init__(
        self,
        url: str,
        token: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.url = url
        self.token = token
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def request(self, command: Sequence[Any]) -> Any:
        """Send one command and return its `result` field."""
        try:
            response = await self.client.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Content-Type": "application/json",
                },
                json=[str(part) for part in command],
            )
        except httpx.HTTPError as e:
            raise StoreError(f"Upstash request failed: {e}") from e

        if response.status_code >= 400:
            raise StoreError(
                f"Upstash request failed ({response.status_code}): {response.text}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise StoreError(f"Upstash returned a non-JSON response: {response.text[:200]}") from e

        if body.get("error"):
            raise StoreError(str(body["error"]))

        return body.get("result")

    async def get(self, key: str) -> Optional[str]:
        return await self.request(["GET", key])

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> Optional[str]:
        if ttl_seconds:
            return await self.request(["SET", key, value, "EX", ttl_seconds])
        return await self.request(["SET", key, value])

    async def delete(self, key: str) -> int:
        return int(await self.request(["DEL", key]) or 0)

    async def incr(self, key: str) -> int:
        return int(await self.request(["INCR", key]))

    async def expire(self, key: str, ttl_seconds: int) -> int:
        return int(await self.request(["EXPIRE", key, ttl_seconds]) or 0)

    async def zadd(self, key: str, score: float, member: str) -> int:
        return int(await self.request(["ZADD", key, _format_score(score), member]) or 0)

    async def zrange(self, key: str, start: int, stop: int) -> List[str]:
        result = await self.request(["ZRANGE", key, start, stop])
        return [str(member) for member in result or []]

    async def zrem(self, key: str, member: str) -> int:
        return int(await self.request(["ZREM", key, member]) or 0)

    async def hset(self, key: str, mapping: Dict[str, str]) -> int:
        flat: List[str] = []
        for field, value in mapping.items():
            flat.extend([field, value])
        return int(await self.request(["HSET", key, *flat]) or 0)

    async def hgetall(self, key: str) -> Optional[Dict[str, str]]:
        result = await self.request(["HGETALL", key])
        if not result:
            return None

        return {
            str(result[i]): str(result[i + 1]) if i + 1 < len(result) else ""
            for i in range(0, len(result), 2)
        }

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


def _format_score(score: float) -> str:
    # Millisecond timestamps must not be sent in exponent notation
    if float(score).is_integer():
        return str(int(score))
    return repr(float(score))
