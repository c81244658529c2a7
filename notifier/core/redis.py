"""
Redis connection management
Owns the shared async client used by the notification queue
"""

import redis.asyncio as redis
from typing import Optional
import logging

from .config import settings

logger = logging.getLogger(__name__)

class RedisManager:
    """Redis connection manager"""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.redis_client: Optional[redis.Redis] = None

    async def connect(self) -> redis.Redis:
        """Initialize Redis connection

        A failed ping is only logged: the client stays usable and every
        queue operation reports the outage on its own.
        """
        if self.redis_client is None:
            self.redis_client = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=settings.REDIS_MAX_CONNECTIONS
            )
        try:
            await self.redis_client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis is not reachable yet: {e}")
        return self.redis_client

    async def disconnect(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("Redis connection closed")

    @property
    def client(self) -> redis.Redis:
        if self.redis_client is None:
            raise RuntimeError("Redis client is not connected")
        return self.redis_client

# Global connection manager
redis_manager = RedisManager()
