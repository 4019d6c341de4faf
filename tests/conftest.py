"""Shared fixtures and in-memory doubles of the storage and publisher ports."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry
from pymongo import DESCENDING

from user_service.api.http_server import UsersAPI
from user_service.domain.ports import EventPublisher, PublishError, StorageError, UsersStorage
from user_service.domain.schema import ListQuery, User, UserEvent, WriteResult, WriteStatus
from user_service.infra.query_builder import build_find_options
from user_service.services.users_service import UsersService
from user_service.telemetry.metrics import HTTPMetrics


class InMemoryUsersStorage(UsersStorage):
    """Users store that evaluates the Mongo find options in memory."""

    def __init__(self) -> None:
        self.users: Dict[str, User] = {}
        self.fail_with: Optional[Exception] = None
        self.decode_fails = False
        self.healthy = True

    def seed(self, *users: User) -> None:
        for user in users:
            self.users[user.id] = user

    def _check_failure(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def create_user(self, user: User) -> None:
        self._check_failure()
        if user.id in self.users:
            raise StorageError("duplicate key")
        self.users[user.id] = user

    async def get_user(self, user_id: str) -> Optional[User]:
        self._check_failure()
        return self.users.get(user_id)

    async def list_users(self, query: ListQuery) -> List[User]:
        self._check_failure()
        options = build_find_options(query)

        matched = [
            user for user in self.users.values()
            if all(getattr(user, name) == value for name, value in options.filter.items())
        ]
        for field, direction in reversed(options.sort):
            matched.sort(key=lambda user: getattr(user, field), reverse=direction == DESCENDING)

        matched = matched[options.skip:]
        if options.limit:
            matched = matched[:options.limit]
        return matched

    async def update_user(self, user: User) -> WriteResult:
        self._check_failure()
        existing = self.users.get(user.id)
        if existing is None:
            return WriteResult(status=WriteStatus.NOT_FOUND)

        updated = user.model_copy(update={"created_at": existing.created_at})
        self.users[user.id] = updated
        if self.decode_fails:
            return WriteResult(status=WriteStatus.DECODE_FAILED, error="cannot decode")
        return WriteResult(status=WriteStatus.SUCCESS, user=updated)

    async def delete_user(self, user_id: str) -> WriteResult:
        self._check_failure()
        if self.users.pop(user_id, None) is None:
            return WriteResult(status=WriteStatus.NOT_FOUND)
        return WriteResult(status=WriteStatus.SUCCESS)

    async def check_health(self) -> bool:
        return self.healthy


class RecordingPublisher(EventPublisher):
    """Publisher that keeps published events, optionally failing every publish."""

    def __init__(self) -> None:
        self.events: List[UserEvent] = []
        self.attempts = 0
        self.fail = False
        self.healthy = True

    async def publish(self, event: UserEvent) -> None:
        self.attempts += 1
        if self.fail:
            raise PublishError("broker unavailable")
        self.events.append(event)

    async def check_health(self) -> bool:
        return self.healthy


@pytest.fixture
def storage() -> InMemoryUsersStorage:
    return InMemoryUsersStorage()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def users_service(storage, publisher) -> UsersService:
    return UsersService(storage=storage, publisher=publisher)


@pytest.fixture
def metrics() -> HTTPMetrics:
    return HTTPMetrics(CollectorRegistry())


@pytest.fixture
def client(users_service, metrics):
    api = UsersAPI(users_service=users_service, metrics=metrics)
    with TestClient(api.app) as test_client:
        yield test_client


@pytest.fixture
def valid_payload() -> dict:
    return {
        "first_name": "John",
        "last_name": "Wick",
        "nickname": "babayaga",
        "password": "continental",
        "email": "john.wick@mail.com",
        "country": "US",
    }


@pytest.fixture
def make_user():
    """Factory for stored users with distinct ids and fixed timestamps."""
    def _make_user(**overrides) -> User:
        created = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        data = {
            "id": str(uuid.uuid4()),
            "first_name": "Jane",
            "last_name": "Doe",
            "nickname": "jd",
            "password": "secret",
            "email": "jane.doe@mail.com",
            "country": "UK",
            "created_at": created,
            "updated_at": created,
        }
        data.update(overrides)
        return User(**data)

    return _make_user
