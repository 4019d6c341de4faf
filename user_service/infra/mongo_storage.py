"""
MongoDB implementation of UsersStorage interface.
Every operation is bounded by the configured operation timeout.
"""

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from pydantic import ValidationError as ModelValidationError
from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from ..domain.ports import UsersStorage, StorageError
from ..domain.schema import ListQuery, User, WriteResult, WriteStatus
from .query_builder import build_find_options


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fields written by update; created_at is deliberately absent
UPDATABLE_FIELDS = (
    "first_name",
    "last_name",
    "nickname",
    "password",
    "email",
    "country",
    "updated_at",
)


def to_document(user: User) -> Dict[str, Any]:
    """Convert a User to its stored form with the id under _id."""
    document = user.model_dump(exclude={"id"})
    document["_id"] = user.id
    return document


def from_document(document: Dict[str, Any]) -> User:
    """
    Convert a stored document to a User.

    Raises:
        pydantic.ValidationError: If the document does not match the User shape
    """
    data = dict(document)
    data["id"] = data.pop("_id", None)
    return User.model_validate(data)


class MongoUsersStorage(UsersStorage):
    """
    Users collection access through the pymongo asyncio client.
    """

    def __init__(
        self,
        collection: AsyncCollection,
        client: Optional[AsyncMongoClient] = None,
        operation_timeout: float = 3.0
    ):
        """
        Initialize storage.

        Args:
            collection: The users collection
            client: Owning client, used for health checks
            operation_timeout: Deadline for each operation in seconds
        """
        self.collection = collection
        self.client = client
        self.operation_timeout = operation_timeout

    async def create_user(self, user: User) -> None:
        await self._run("insert_one", user.id, self.collection.insert_one(to_document(user)))

        logger.debug(
            "User inserted",
            extra={"component": "mongo_storage", "user_id": user.id}
        )

    async def get_user(self, user_id: str) -> Optional[User]:
        document = await self._run(
            "find_one", user_id, self.collection.find_one({"_id": {"$eq": user_id}})
        )
        if document is None:
            return None

        try:
            return from_document(document)
        except ModelValidationError as e:
            logger.error(
                f"Failed to decode user document: {e}",
                extra={"component": "mongo_storage", "user_id": user_id}
            )
            raise StorageError(f"Failed to decode user {user_id}: {e}") from e

    async def list_users(self, query: ListQuery) -> List[User]:
        options = build_find_options(query)

        async with self.collection.find(
            options.filter,
            sort=options.sort,
            skip=options.skip,
            limit=options.limit,
        ) as cursor:
            documents = await self._run("find", None, cursor.to_list(None))

        try:
            return [from_document(document) for document in documents]
        except ModelValidationError as e:
            logger.error(
                f"Failed to decode users list: {e}",
                extra={"component": "mongo_storage"}
            )
            raise StorageError(f"Failed to decode users: {e}") from e

    async def update_user(self, user: User) -> WriteResult:
        fields = user.model_dump(include=set(UPDATABLE_FIELDS))

        document = await self._run(
            "find_one_and_update",
            user.id,
            self.collection.find_one_and_update(
                {"_id": {"$eq": user.id}},
                {"$set": fields},
                return_document=ReturnDocument.AFTER,
            ),
        )
        if document is None:
            return WriteResult(status=WriteStatus.NOT_FOUND)

        try:
            updated = from_document(document)
        except ModelValidationError as e:
            # The update is applied at this point, only the response is unusable
            return WriteResult(
                status=WriteStatus.DECODE_FAILED,
                error=f"failed to decode document returned from DB: {e}"
            )

        return WriteResult(status=WriteStatus.SUCCESS, user=updated)

    async def delete_user(self, user_id: str) -> WriteResult:
        result = await self._run(
            "delete_one", user_id, self.collection.delete_one({"_id": {"$eq": user_id}})
        )
        if result.deleted_count == 0:
            return WriteResult(status=WriteStatus.NOT_FOUND)

        return WriteResult(status=WriteStatus.SUCCESS)

    async def check_health(self) -> bool:
        try:
            if self.client is None:
                return False
            await asyncio.wait_for(
                self.client.admin.command("ping"),
                timeout=self.operation_timeout
            )
            return True
        except (PyMongoError, asyncio.TimeoutError) as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    async def _run(self, operation: str, user_id: Optional[str], awaitable: Awaitable[T]) -> T:
        """
        Await a driver call within the operation timeout.

        Raises:
            StorageError: On driver failure or timeout
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.operation_timeout)

        except asyncio.TimeoutError as e:
            logger.error(
                f"MongoDB {operation} timed out after {self.operation_timeout}s",
                extra={"component": "mongo_storage", "operation": operation, "user_id": user_id}
            )
            raise StorageError(f"{operation} timed out") from e

        except PyMongoError as e:
            logger.error(
                f"MongoDB {operation} failed: {e}",
                extra={
                    "component": "mongo_storage",
                    "operation": operation,
                    "user_id": user_id,
                    "error": str(e)
                }
            )
            raise StorageError(f"{operation} failed: {e}") from e


async def connect_mongo(
    url: str,
    app_name: str = "user-service",
    timeout: float = 5.0
) -> AsyncMongoClient:
    """
    Create a client and verify connectivity.

    Raises:
        StorageError: If the server cannot be reached
    """
    client = AsyncMongoClient(url, appname=app_name, tz_aware=True)
    try:
        await asyncio.wait_for(client.admin.command("ping"), timeout=timeout)
        logger.info("Connected to MongoDB", extra={"component": "mongo_storage"})
        return client

    except (PyMongoError, asyncio.TimeoutError) as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        await client.close()
        raise StorageError(f"MongoDB connection failed: {e}") from e
