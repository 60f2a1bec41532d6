"""
Durable key-value store adapters used by the job queue.
"""

from .base import KeyValueStore
from .upstash import UpstashRedis
from .redis_store import RedisCommandStore
from .connection import get_store, close_store

__all__ = [
    "KeyValueStore",
    "UpstashRedis",
    "RedisCommandStore",
    "get_store",
    "close_store",
]
