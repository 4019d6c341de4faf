"""
Domain layer for user-service.

Contains data models, interfaces, validation and query parsing.
"""

from .schema import (
    User,
    UserInput,
    ListQuery,
    Sort,
    FilterFields,
    WriteStatus,
    WriteResult,
    MutationOutcome,
    UserAction,
    UserEvent,
    UserDeletedData,
    HealthStatus,
)
from .ports import (
    UsersStorage,
    EventPublisher,
    ValidationError,
    InvalidQueryError,
    StorageError,
    PublishError,
)

__all__ = [
    "User",
    "UserInput",
    "ListQuery",
    "Sort",
    "FilterFields",
    "WriteStatus",
    "WriteResult",
    "MutationOutcome",
    "UserAction",
    "UserEvent",
    "UserDeletedData",
    "HealthStatus",
    "UsersStorage",
    "EventPublisher",
    "ValidationError",
    "InvalidQueryError",
    "StorageError",
    "PublishError",
]
