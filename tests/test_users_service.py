"""Tests for the users service write orchestration."""

import uuid
from datetime import datetime, timezone

import pytest

from user_service.domain.ports import InvalidQueryError, StorageError, ValidationError
from user_service.domain.schema import UserAction, UserDeletedData, UserInput, WriteStatus


@pytest.mark.asyncio
async def test_create_assigns_server_fields_and_publishes(users_service, storage, publisher, valid_payload):
    before = datetime.now(timezone.utc)

    outcome = await users_service.create_user(UserInput(**valid_payload))

    user = outcome.user
    assert outcome.status == WriteStatus.SUCCESS
    assert outcome.event_published
    assert uuid.UUID(user.id)
    assert user.created_at == user.updated_at
    assert user.created_at.microsecond % 1000 == 0
    assert user.created_at >= before.replace(microsecond=(before.microsecond // 1000) * 1000)
    assert storage.users[user.id] == user

    assert len(publisher.events) == 1
    assert publisher.events[0].action == UserAction.CREATED
    assert publisher.events[0].user_data == user


@pytest.mark.asyncio
async def test_create_ignores_client_supplied_identity(users_service, valid_payload):
    payload = dict(valid_payload, id="client-id", created_at="1999-01-01T00:00:00Z")

    outcome = await users_service.create_user(UserInput(**payload))

    assert outcome.user.id != "client-id"
    assert outcome.user.created_at.year > 1999


@pytest.mark.asyncio
async def test_create_validation_failure_touches_nothing(users_service, storage, publisher, valid_payload):
    with pytest.raises(ValidationError):
        await users_service.create_user(UserInput(**dict(valid_payload, nickname="")))

    assert storage.users == {}
    assert publisher.attempts == 0


@pytest.mark.asyncio
async def test_create_storage_failure_does_not_publish(users_service, storage, publisher, valid_payload):
    storage.fail_with = StorageError("db down")

    with pytest.raises(StorageError):
        await users_service.create_user(UserInput(**valid_payload))

    assert publisher.attempts == 0


@pytest.mark.asyncio
async def test_create_publish_failure_is_swallowed(users_service, storage, publisher, valid_payload):
    publisher.fail = True

    outcome = await users_service.create_user(UserInput(**valid_payload))

    assert outcome.status == WriteStatus.SUCCESS
    assert outcome.emit_event
    assert not outcome.event_published
    assert publisher.attempts == 1
    assert outcome.user.id in storage.users


@pytest.mark.asyncio
async def test_update_keeps_created_at_and_publishes(users_service, storage, publisher, make_user, valid_payload):
    existing = make_user()
    storage.seed(existing)

    outcome = await users_service.update_user(existing.id, UserInput(**valid_payload))

    assert outcome.status == WriteStatus.SUCCESS
    assert outcome.user.created_at == existing.created_at
    assert outcome.user.updated_at > existing.updated_at
    assert outcome.user.nickname == "babayaga"

    assert [event.action for event in publisher.events] == [UserAction.UPDATED]
    assert publisher.events[0].user_data == outcome.user


@pytest.mark.asyncio
async def test_update_not_found_does_not_publish(users_service, publisher, valid_payload):
    outcome = await users_service.update_user(str(uuid.uuid4()), UserInput(**valid_payload))

    assert outcome.status == WriteStatus.NOT_FOUND
    assert publisher.attempts == 0


@pytest.mark.asyncio
async def test_update_storage_failure_does_not_publish(users_service, storage, publisher, make_user, valid_payload):
    existing = make_user()
    storage.seed(existing)
    storage.fail_with = StorageError("timeout")

    with pytest.raises(StorageError):
        await users_service.update_user(existing.id, UserInput(**valid_payload))

    assert publisher.attempts == 0


@pytest.mark.asyncio
async def test_update_decode_failure_counts_as_success_without_event(
    users_service, storage, publisher, make_user, valid_payload
):
    existing = make_user()
    storage.seed(existing)
    storage.decode_fails = True

    outcome = await users_service.update_user(existing.id, UserInput(**valid_payload))

    assert outcome.status == WriteStatus.DECODE_FAILED
    assert not outcome.emit_event
    assert publisher.attempts == 0
    assert storage.users[existing.id].nickname == "babayaga"


@pytest.mark.asyncio
async def test_update_publish_failure_is_swallowed(users_service, storage, publisher, make_user, valid_payload):
    existing = make_user()
    storage.seed(existing)
    publisher.fail = True

    outcome = await users_service.update_user(existing.id, UserInput(**valid_payload))

    assert outcome.status == WriteStatus.SUCCESS
    assert not outcome.event_published


@pytest.mark.asyncio
async def test_update_validates_body_before_id(users_service, valid_payload):
    with pytest.raises(ValidationError) as exc_info:
        await users_service.update_user("bad-id", UserInput(**dict(valid_payload, email="nope")))

    assert str(exc_info.value) == "email is invalid"


@pytest.mark.asyncio
async def test_delete_publishes_identifier_only(users_service, storage, publisher, make_user):
    existing = make_user()
    storage.seed(existing)

    outcome = await users_service.delete_user(existing.id)

    assert outcome.status == WriteStatus.SUCCESS
    assert existing.id not in storage.users
    assert len(publisher.events) == 1
    assert publisher.events[0].action == UserAction.DELETED
    assert publisher.events[0].user_data == UserDeletedData(id=existing.id)


@pytest.mark.asyncio
async def test_delete_not_found_does_not_publish(users_service, publisher):
    outcome = await users_service.delete_user(str(uuid.uuid4()))

    assert outcome.status == WriteStatus.NOT_FOUND
    assert publisher.attempts == 0


@pytest.mark.asyncio
async def test_delete_storage_failure_does_not_publish(users_service, storage, publisher, make_user):
    existing = make_user()
    storage.seed(existing)
    storage.fail_with = StorageError("db down")

    with pytest.raises(StorageError):
        await users_service.delete_user(existing.id)

    assert publisher.attempts == 0


@pytest.mark.asyncio
async def test_delete_publish_failure_is_swallowed(users_service, storage, publisher, make_user):
    existing = make_user()
    storage.seed(existing)
    publisher.fail = True

    outcome = await users_service.delete_user(existing.id)

    assert outcome.status == WriteStatus.SUCCESS
    assert not outcome.event_published


@pytest.mark.asyncio
async def test_get_user_read_through(users_service, storage, publisher, make_user):
    existing = make_user()
    storage.seed(existing)

    assert await users_service.get_user(existing.id) == existing
    assert await users_service.get_user(str(uuid.uuid4())) is None
    assert publisher.attempts == 0


@pytest.mark.asyncio
async def test_get_user_rejects_bad_id(users_service):
    with pytest.raises(ValidationError):
        await users_service.get_user("42")


@pytest.mark.asyncio
async def test_list_filter_sort_paginate(users_service, storage, make_user):
    storage.seed(
        make_user(nickname="delta", country="UK"),
        make_user(nickname="alpha", country="UK"),
        make_user(nickname="charlie", country="DE"),
        make_user(nickname="bravo", country="UK"),
        make_user(nickname="echo", country="FR"),
    )

    users = await users_service.list_users({
        "country": "UK",
        "sortBy": "nickname.asc",
        "page": "0",
        "pageSize": "2",
    })

    assert [user.nickname for user in users] == ["alpha", "bravo"]


@pytest.mark.asyncio
async def test_list_empty_result(users_service):
    assert await users_service.list_users({"country": "Atlantis"}) == []


@pytest.mark.asyncio
async def test_list_invalid_parameters(users_service):
    with pytest.raises(InvalidQueryError):
        await users_service.list_users({"sortBy": "unknown.desc"})
