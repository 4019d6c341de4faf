"""
Infrastructure layer for user-service.

Contains implementations of domain interfaces using external systems:
MongoDB for users and Redis Streams for events.
"""

from .mongo_storage import MongoUsersStorage, connect_mongo
from .query_builder import FindOptions, build_find_options
from .redis_client import RedisClient
from .redis_publisher import RedisStreamEventPublisher

__all__ = [
    "MongoUsersStorage",
    "connect_mongo",
    "FindOptions",
    "build_find_options",
    "RedisClient",
    "RedisStreamEventPublisher"
]
