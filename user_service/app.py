"""
Main application module for user-service.
Implements dependency injection, service composition and graceful shutdown.
"""

import asyncio
import logging
import math
import sys
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

import uvicorn
from prometheus_client import CollectorRegistry
from pymongo import AsyncMongoClient

from .config import load_config, AppConfig
from .telemetry.logger import setup_logging
from .telemetry.metrics import HTTPMetrics
from .infra.mongo_storage import MongoUsersStorage, connect_mongo
from .infra.redis_client import RedisClient
from .infra.redis_publisher import RedisStreamEventPublisher
from .services.users_service import UsersService
from .api.http_server import UsersAPI


logger = logging.getLogger(__name__)


class UserServiceApp:
    """
    Main service class that composes all dependencies.
    Owns the MongoDB client, the Redis client and the metrics registry.
    """

    def __init__(self, config: AppConfig):
        """
        Initialize service with configuration.

        Args:
            config: Application configuration
        """
        self.config = config

        # Dependencies (will be initialized in setup)
        self.mongo_client: Optional[AsyncMongoClient] = None
        self.redis_client: Optional[RedisClient] = None
        self.users_service: Optional[UsersService] = None
        self.metrics_registry: Optional[CollectorRegistry] = None
        self.api: Optional[UsersAPI] = None

    async def setup(self) -> None:
        """
        Setup all service dependencies.

        Raises:
            Exception: If setup fails
        """
        try:
            logger.info("Setting up user-service")

            self.mongo_client = await connect_mongo(
                self.config.mongo.url,
                app_name=self.config.mongo.app_name,
                timeout=self.config.mongo.operation_timeout
            )
            collection = self.mongo_client[self.config.mongo.database][self.config.mongo.collection]
            storage = MongoUsersStorage(
                collection=collection,
                client=self.mongo_client,
                operation_timeout=self.config.mongo.operation_timeout
            )

            self.redis_client = RedisClient(self.config.redis)
            await self.redis_client.connect()

            publisher = RedisStreamEventPublisher(
                redis_client=self.redis_client,
                stream_key=self.config.redis.events_stream_key,
                maxlen_approx=self.config.redis.maxlen_approx,
                publish_timeout=self.config.redis.publish_timeout
            )

            self.users_service = UsersService(storage=storage, publisher=publisher)

            self.metrics_registry = CollectorRegistry()
            self.api = UsersAPI(
                users_service=self.users_service,
                metrics=HTTPMetrics(self.metrics_registry),
                api_prefix=self.config.server.api_prefix,
                title="User Service",
                version="1.0.0"
            )

            logger.info("Service setup completed successfully")

        except Exception as e:
            logger.error(f"Service setup failed: {e}")
            await self.cleanup()
            raise

    async def cleanup(self) -> None:
        """
        Close MongoDB and Redis concurrently, each within its own grace period.
        """
        logger.info("Cleaning up service resources")

        closers = []
        if self.mongo_client is not None:
            closers.append(self._close_within(
                "mongodb", self.mongo_client.close, self.config.mongo.shutdown_grace_period
            ))
        if self.redis_client is not None:
            closers.append(self._close_within(
                "redis", self.redis_client.close, self.config.redis.shutdown_grace_period
            ))

        await asyncio.gather(*closers)

        self.mongo_client = None
        self.redis_client = None
        logger.info("Service cleanup completed")

    @staticmethod
    async def _close_within(name: str, close: Callable[[], Awaitable[None]], grace_period: float) -> None:
        try:
            await asyncio.wait_for(close(), timeout=grace_period)
            logger.info(f"Closed {name} connection")
        except asyncio.TimeoutError:
            logger.error(f"Closing {name} exceeded {grace_period}s grace period")
        except Exception as e:
            logger.error(f"Error closing {name}: {e}")

    async def run(self) -> None:
        """
        Serve HTTP until a shutdown signal is received.

        uvicorn stops accepting connections on SIGINT/SIGTERM and drains
        in-flight requests before returning.
        """
        if not self.api:
            raise RuntimeError("Service not setup. Call setup() first.")

        logger.info(
            f"Starting user-service on {self.config.server.host}:{self.config.server.port}"
        )

        server_config = uvicorn.Config(
            app=self.api.app,
            host=self.config.server.host,
            port=self.config.server.port,
            log_level=self.config.server.log_level,
            timeout_graceful_shutdown=math.ceil(self.config.server.graceful_shutdown_timeout),
            access_log=False
        )
        server = uvicorn.Server(server_config)

        try:
            await server.serve()
        except Exception as e:
            logger.error(f"Server error: {e}")
            raise

        logger.info("HTTP server stopped")

    @asynccontextmanager
    async def lifespan(self):
        """
        Context manager for service lifecycle.

        Handles setup and cleanup automatically.
        """
        await self.setup()
        try:
            yield self
        finally:
            await self.cleanup()


async def main() -> None:
    """
    Main entry point for the application.
    """
    try:
        config = load_config()
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    setup_logging(config.logging, service_name=config.service_name)

    try:
        async with UserServiceApp(config).lifespan() as service:
            await service.run()

    except KeyboardInterrupt:
        logger.info("Service interrupted by user")
    except Exception as e:
        logger.error(f"Service failed: {e}")
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
