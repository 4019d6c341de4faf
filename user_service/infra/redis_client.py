"""
Redis connection for user-service.
app.py owns its lifetime, the event publisher borrows the client.
"""

import asyncio
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, ConnectionError

from ..config import RedisConfig


logger = logging.getLogger(__name__)


class RedisClient:
    """
    redis.asyncio client over a bounded connection pool.
    """

    def __init__(self, config: RedisConfig):
        self.config = config
        self._client: Optional[redis.Redis] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """
        Open the pool and check that the server answers.

        Raises:
            ConnectionError: If Redis is unreachable
        """
        client = redis.from_url(
            self.config.url,
            max_connections=self.config.max_connections,
            socket_timeout=self.config.socket_timeout,
            socket_connect_timeout=self.config.socket_connect_timeout,
            health_check_interval=self.config.health_check_interval,
            retry_on_timeout=True
        )

        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.error(f"Failed to connect to Redis: {e}", extra={"component": "redis_client"})
            await client.aclose()
            raise ConnectionError(f"Redis connection failed: {e}") from e

        self._client = client
        logger.info(
            "Connected to Redis",
            extra={"component": "redis_client", "stream": self.config.events_stream_key}
        )

    async def close(self) -> None:
        """Close the client together with its pool."""
        if self._client is None:
            return

        client, self._client = self._client, None
        await client.aclose()
        logger.info("Redis connection closed", extra={"component": "redis_client"})

    @property
    def client(self) -> redis.Redis:
        """
        Raises:
            RuntimeError: If not connected
        """
        if self._client is None:
            raise RuntimeError("Redis client not connected. Call connect() first.")
        return self._client

    async def ping(self) -> bool:
        """Health probe bounded by the socket timeout."""
        if self._client is None:
            return False

        try:
            await asyncio.wait_for(self._client.ping(), timeout=self.config.socket_timeout)
            return True
        except (RedisError, asyncio.TimeoutError) as e:
            logger.warning(f"Redis ping failed: {e}", extra={"component": "redis_client"})
            return False
