"""
Command surface shared by every queue store backend.
"""

from typing import Dict, List, Optional, Protocol


class KeyValueStore(Protocol):
    """
    Minimal key / sorted-set / hash store.

    Each method is exactly one round trip to the remote store. Backends never
    retry and never batch commands; failures surface as StoreError.
    """

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> Optional[str]: ...

    async def delete(self, key: str) -> int: ...

    async def incr(self, key: str) -> int: ...

    async def expire(self, key: str, ttl_seconds: int) -> int: ...

    async def zadd(self, key: str, score: float, member: str) -> int: ...

    async def zrange(self, key: str, start: int, stop: int) -> List[str]: ...

    async def zrem(self, key: str, member: str) -> int: ...

    async def hset(self, key: str, mapping: Dict[str, str]) -> int: ...

    async def hgetall(self, key: str) -> Optional[Dict[str, str]]: ...

    async def close(self) -> None: ...
