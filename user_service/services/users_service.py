"""
Users service for user-service.
Coordinates validation, store writes and event publishing.

The store write decides success or failure. Events are best effort:
a failed publish is logged and never changes the outcome.
"""

import logging
import uuid
from typing import List, Optional

from ..domain.ports import UsersStorage, EventPublisher, StorageError
from ..domain.query_params import parse_list_query
from ..domain.schema import (
    User,
    UserInput,
    UserEvent,
    MutationOutcome,
    WriteStatus,
    utc_now_millis,
)
from ..domain.validation import validate_user, parse_user_id


logger = logging.getLogger(__name__)


class UsersService:
    """
    Write orchestrator and read-through for the users resource.

    Pipeline per mutation: validate → store write → publish event
    """

    def __init__(self, storage: UsersStorage, publisher: EventPublisher):
        self.storage = storage
        self.publisher = publisher

    async def create_user(self, user_input: UserInput) -> MutationOutcome:
        """
        Create a user with a server generated id and timestamps.

        Raises:
            ValidationError: If the input is invalid
            StorageError: If the store write fails (no event is published)
        """
        validate_user(user_input)

        now = utc_now_millis()
        user = User(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            **user_input.model_dump()
        )

        try:
            await self.storage.create_user(user)
        except StorageError:
            logger.error(
                "Failed to create user",
                extra={"component": "users_service", "user_id": user.id}
            )
            raise

        published = await self._publish(UserEvent.created(user))
        return MutationOutcome(
            status=WriteStatus.SUCCESS,
            user=user,
            emit_event=True,
            event_published=published
        )

    async def get_user(self, user_id: str) -> Optional[User]:
        """
        Read a user. Returns None if it does not exist.

        Raises:
            ValidationError: If the id is not a UUID
            StorageError: If the read fails
        """
        user_id = parse_user_id(user_id)
        return await self.storage.get_user(user_id)

    async def list_users(self, params) -> List[User]:
        """
        List users from raw query parameters.

        An empty result is an empty list.

        Raises:
            InvalidQueryError: If the query parameters are invalid
            StorageError: If the read fails
        """
        query = parse_list_query(params)
        return await self.storage.list_users(query)

    async def update_user(self, user_id: str, user_input: UserInput) -> MutationOutcome:
        """
        Replace the mutable fields of a user.

        created_at is never changed. When the store applied the write but
        its response could not be decoded, the update counts as successful
        and no event is published.

        Raises:
            ValidationError: If the input or the id is invalid
            StorageError: If the store write fails (no event is published)
        """
        validate_user(user_input)
        user_id = parse_user_id(user_id)

        now = utc_now_millis()
        user = User(
            id=user_id,
            created_at=now,  # not written by the store
            updated_at=now,
            **user_input.model_dump()
        )

        try:
            result = await self.storage.update_user(user)
        except StorageError:
            logger.error(
                "Failed to update user",
                extra={"component": "users_service", "user_id": user_id}
            )
            raise

        if result.status == WriteStatus.NOT_FOUND:
            return MutationOutcome(status=WriteStatus.NOT_FOUND)

        if result.status == WriteStatus.DECODE_FAILED:
            logger.error(
                f"User updated but DB response could not be decoded: {result.error}",
                extra={"component": "users_service", "user_id": user_id}
            )
            return MutationOutcome(status=WriteStatus.DECODE_FAILED)

        published = await self._publish(UserEvent.updated(result.user))
        return MutationOutcome(
            status=WriteStatus.SUCCESS,
            user=result.user,
            emit_event=True,
            event_published=published
        )

    async def delete_user(self, user_id: str) -> MutationOutcome:
        """
        Delete a user and publish an event carrying only its id.

        Raises:
            ValidationError: If the id is not a UUID
            StorageError: If the delete fails (no event is published)
        """
        user_id = parse_user_id(user_id)

        try:
            result = await self.storage.delete_user(user_id)
        except StorageError:
            logger.error(
                "Failed to delete user",
                extra={"component": "users_service", "user_id": user_id}
            )
            raise

        if result.status == WriteStatus.NOT_FOUND:
            return MutationOutcome(status=WriteStatus.NOT_FOUND)

        published = await self._publish(UserEvent.deleted(user_id))
        return MutationOutcome(
            status=WriteStatus.SUCCESS,
            emit_event=True,
            event_published=published
        )

    async def _publish(self, event: UserEvent) -> bool:
        """Publish an event. Failures are logged and reported as False."""
        try:
            await self.publisher.publish(event)

        except Exception as e:
            logger.error(
                f"Failed to publish {event.action.value} user event: {e}",
                extra={
                    "component": "users_service",
                    "action": event.action.value,
                    "user_id": event.user_id,
                    "error": str(e)
                }
            )
            return False

        logger.info(
            f"Published {event.action.value} user event",
            extra={
                "component": "users_service",
                "action": event.action.value,
                "user_id": event.user_id
            }
        )
        return True
