"""
Queue store connection management.

Provides a singleton store adapter chosen from configuration: the Upstash
REST client when UPSTASH_REDIS_REST_URL is set, otherwise a native Redis
connection from REDIS_URL.
"""

from typing import Optional

from brasa.config import config
from brasa.errors import StoreError
from brasa.store.base import KeyValueStore
from brasa.store.redis_store import RedisCommandStore
from brasa.store.upstash import UpstashRedis
from brasa.utils.logging import store_logger as logger

# Singleton adapter
_store: Optional[KeyValueStore] = None


def get_store() -> KeyValueStore:
    """
    Get the queue store singleton.

    Raises:
        StoreError: If neither Upstash nor Redis is configured
    """
    global _store

    if _store is None:
        if config.upstash_configured:
            _store = UpstashRedis(
                config.UPSTASH_REDIS_REST_URL,
                config.UPSTASH_REDIS_REST_TOKEN,
            )
            logger.info("Queue store: Upstash REST", url=config.UPSTASH_REDIS_REST_URL)
        elif config.REDIS_URL:
            _store = RedisCommandStore(config.REDIS_URL)
            # Never log credentials embedded in the URL
            host = config.REDIS_URL.split("@")[-1] if "@" in config.REDIS_URL else "localhost"
            logger.info("Queue store: Redis", host=host)
        else:
            raise StoreError(
                "No queue store configured. "
                "Set UPSTASH_REDIS_REST_URL/UPSTASH_REDIS_REST_TOKEN or REDIS_URL."
            )

    return _store


async def close_store():
    """Close the store connection (for cleanup)."""
    global _store
    if _store is not None:
        await _store.close()
        _store = None
