"""
Ports (interfaces) for user-service.
Following Dependency Inversion Principle - high-level modules depend on abstractions.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .schema import User, ListQuery, WriteResult, UserEvent


class UsersStorage(ABC):
    """
    Interface for the users document store.
    Implemented with MongoDB in production and in memory in tests.
    """

    @abstractmethod
    async def create_user(self, user: User) -> None:
        """
        Insert a new user.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        """
        Fetch a user by identifier.

        Returns:
            The user, or None if no user has this identifier

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def list_users(self, query: ListQuery) -> List[User]:
        """
        Fetch users matching the filters of the query, sorted and paginated.

        Raises:
            InvalidQueryError: If the query cannot be translated for the store
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def update_user(self, user: User) -> WriteResult:
        """
        Update every mutable field of the user, never created_at.

        Returns:
            WriteResult with SUCCESS and the post-write document,
            NOT_FOUND, or DECODE_FAILED when the write was applied
            but the returned document could not be decoded

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> WriteResult:
        """
        Delete a user.

        Returns:
            WriteResult with SUCCESS or NOT_FOUND

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Check if the store is reachable."""
        pass


class EventPublisher(ABC):
    """
    Interface for publishing user events to downstream systems.
    Can be implemented with Redis Streams, Kafka, NATS, etc.
    """

    @abstractmethod
    async def publish(self, event: UserEvent) -> None:
        """
        Publish an event.

        Raises:
            PublishError: If publishing fails or times out
        """
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Check if the event bus is reachable."""
        pass


# Custom exceptions
class ValidationError(ValueError):
    """Raised when a user representation or identifier is invalid."""
    pass


class InvalidQueryError(ValueError):
    """Raised when list query parameters are invalid."""
    pass


class StorageError(Exception):
    """Raised when a store operation fails."""
    pass


class PublishError(Exception):
    """Raised when event publishing fails."""
    pass
