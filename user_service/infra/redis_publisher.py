"""
Redis Streams implementation of EventPublisher interface.
Each user event becomes one stream entry.
"""

import asyncio
import logging

from redis.exceptions import RedisError

from ..domain.ports import EventPublisher, PublishError
from ..domain.schema import UserEvent
from .redis_client import RedisClient


logger = logging.getLogger(__name__)


class RedisStreamEventPublisher(EventPublisher):
    """
    Publishes user events to a Redis Stream.
    Fire-and-forget: no retries, bounded by the publish timeout.
    """

    def __init__(
        self,
        redis_client: RedisClient,
        stream_key: str = "UserEvents",
        maxlen_approx: int = 1_000_000,
        publish_timeout: float = 3.0
    ):
        """
        Initialize publisher.

        Args:
            redis_client: Redis client instance
            stream_key: Redis Stream key name
            maxlen_approx: Approximate max length for stream trimming
            publish_timeout: Deadline for a single publish in seconds
        """
        self.redis_client = redis_client
        self.stream_key = stream_key
        self.maxlen_approx = maxlen_approx
        self.publish_timeout = publish_timeout

    async def publish(self, event: UserEvent) -> None:
        """
        Append the event to the stream.

        Raises:
            PublishError: If Redis fails or the publish times out
        """
        try:
            stream_id = await asyncio.wait_for(
                self.redis_client.client.xadd(
                    self.stream_key,
                    self._prepare_stream_data(event),
                    maxlen=self.maxlen_approx,
                    approximate=True
                ),
                timeout=self.publish_timeout
            )

        except asyncio.TimeoutError as e:
            raise PublishError(
                f"Publish to {self.stream_key} timed out after {self.publish_timeout}s"
            ) from e

        except (RedisError, RuntimeError) as e:
            raise PublishError(f"Redis publish failed: {e}") from e

        logger.debug(
            f"Event written to stream: {stream_id}",
            extra={
                "component": "redis_publisher",
                "action": event.action.value,
                "user_id": event.user_id,
                "stream_id": stream_id
            }
        )

    async def check_health(self) -> bool:
        return await self.redis_client.ping()

    def _prepare_stream_data(self, event: UserEvent) -> dict[str, str]:
        """
        Redis Streams require string values, the event travels as JSON.
        """
        return {
            "action": event.action.value,
            "user_id": event.user_id,
            "event_json": event.model_dump_json()
        }
