"""Tests for the user service."""

import asyncio
import json
import time

import pytest
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

from modules.events.outbox import InMemoryOutboxStore, OutboxRelay
from modules.events.publisher import InMemoryEventPublisher
from modules.users.exceptions import (
    InvalidPaginationError,
    InvalidPremiseIdError,
    InvalidVerificationTokenError,
    UserAlreadyExistsError,
    UserEventError,
    UserNotFoundError,
)
from modules.users.models import CreateUserRequest, UserRole
from modules.users.repository import InMemoryUserRepository
from modules.users.service import UserService
from modules.auth.exceptions import InactiveAccountError
from shared.exceptions import DatabaseError, ErrorKind
from shared.repository import RepositoryResult
from tests.conftest import create_test_token, make_user

PREMISE_ID = "11111111-1111-4111-8111-111111111111"


def request_for(email: str = "ann@x.com", premise_id: str | None = "") -> CreateUserRequest:
    return CreateUserRequest(
        name="Ann", email=email, password="secret1", role=UserRole.ADMIN, premise_id=premise_id
    )


class TestCreateUserOutbox:
    """Registration with transactional event delivery (default wiring)."""

    @pytest.mark.asyncio
    async def test_create_user(self, user_service, create_request, publisher, outbox, user_repository):
        """Ann is created inactive, without password, and announced once."""
        user = await user_service.create_user(create_request)

        assert user.password == ""
        assert user.is_active is False
        assert user.email == "ann@x.com"
        assert user.role is UserRole.ADMIN

        messages = publisher.messages_for("user.created")
        assert len(messages) == 1
        envelope = json.loads(messages[0].value)
        assert envelope["type"] == "user.created"
        assert envelope["payload"]["email"] == "ann@x.com"
        assert messages[0].key == user.id.encode("utf-8")

        assert outbox.pending() == []
        assert user_repository.users[user.id].password.startswith("$2")

    @pytest.mark.asyncio
    async def test_event_token_identifies_user(self, user_service, create_request, publisher, tokens):
        user = await user_service.create_user(create_request)

        token = json.loads(publisher.messages[0].value)["payload"]["token"]
        claims = tokens.parse(token)

        assert claims.user_id == user.id
        assert claims.role == "admin"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, user_service, create_request, user_repository, outbox, publisher):
        """Second registration conflicts and leaves exactly one row and one event."""
        await user_service.create_user(create_request)

        with pytest.raises(UserAlreadyExistsError) as exc_info:
            await user_service.create_user(create_request)

        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert exc_info.value.message == "User with this email already exists"
        assert [u.email for u in user_repository.users.values()] == ["ann@x.com"]
        assert len(outbox.events) == 1
        assert len(publisher.messages) == 1

    @pytest.mark.asyncio
    async def test_malformed_premise_id(self, user_service, user_repository, publisher):
        """A non-UUID premise is a bad request and nothing is written or sent."""
        with pytest.raises(InvalidPremiseIdError) as exc_info:
            await user_service.create_user(request_for(premise_id="not-a-uuid"))

        assert exc_info.value.kind is ErrorKind.BAD_REQUEST
        assert user_repository.users == {}
        assert publisher.messages == []

    @pytest.mark.asyncio
    async def test_premise_association(self, user_service, user_repository):
        user = await user_service.create_user(request_for(premise_id=PREMISE_ID))

        premises = (await user_repository.get_user_premises(user.id)).value
        assert [p.premise_id for p in premises] == [PREMISE_ID]

    @pytest.mark.asyncio
    async def test_unknown_premise_is_database_error(self, publisher, tokens, hasher):
        outbox = InMemoryOutboxStore()
        repository = InMemoryUserRepository(outbox=outbox, premises=set())
        service = UserService(
            repository=repository,
            publisher=publisher,
            tokens=tokens,
            hasher=hasher,
            relay=OutboxRelay(outbox, publisher),
        )

        with pytest.raises(DatabaseError):
            await service.create_user(request_for(premise_id=PREMISE_ID))

        assert repository.users == {}
        assert outbox.events == {}

    @pytest.mark.asyncio
    async def test_broker_outage_keeps_event_pending(self, user_service, create_request, publisher, outbox, relay):
        """Registration succeeds; the relay delivers the event later."""
        publisher.fail_with = ConnectionError("broker down")

        user = await user_service.create_user(create_request)

        assert user.email == "ann@x.com"
        pending = outbox.pending()
        assert len(pending) == 1
        assert pending[0].attempts == 1
        assert publisher.messages == []

        publisher.fail_with = None
        delivered = await relay.run_once()

        assert delivered == 1
        assert outbox.pending() == []
        assert len(publisher.messages_for("user.created")) == 1

    @pytest.mark.asyncio
    async def test_repository_unavailable(self, publisher, tokens, hasher, relay):
        repository = MagicMock()
        repository.create_user = AsyncMock(return_value=RepositoryResult.unavailable())
        service = UserService(repository, publisher, tokens, hasher, relay=relay)

        with pytest.raises(DatabaseError) as exc_info:
            await service.create_user(request_for())

        assert exc_info.value.kind is ErrorKind.DATABASE
        assert publisher.messages == []

    @pytest.mark.asyncio
    async def test_hashing_does_not_block_event_loop(self, user_repository, publisher, tokens, relay):
        """Other tasks keep running while bcrypt works."""
        def slow_hash(password):
            time.sleep(0.2)
            return "$2b$04$hash"

        hasher = MagicMock()
        hasher.hash.side_effect = slow_hash
        service = UserService(user_repository, publisher, tokens, hasher, relay=relay)
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0.01)

        task = asyncio.create_task(ticker())
        await service.create_user(request_for())
        task.cancel()

        assert ticks >= 5

    @pytest.mark.asyncio
    async def test_passes_event_to_repository(self, publisher, tokens, hasher, relay):
        """The outbox row is written by the same repository call as the user."""
        repository = MagicMock()
        repository.create_user = AsyncMock(side_effect=lambda user, premise, event: RepositoryResult.success(user))
        service = UserService(repository, publisher, tokens, hasher, relay=relay)

        await service.create_user(request_for(premise_id=PREMISE_ID))

        user, premise_id, event = repository.create_user.call_args.args
        assert premise_id == UUID(PREMISE_ID)
        assert event.topic == "user.created"
        assert event.key == user.id


class TestCreateUserInline:
    """Registration publishing the event synchronously, without an outbox."""

    @pytest.mark.asyncio
    async def test_create_user(self, inline_user_service, create_request, publisher, outbox):
        user = await inline_user_service.create_user(create_request)

        assert user.password == ""
        assert user.is_active is False
        messages = publisher.messages_for("user.created")
        assert len(messages) == 1
        assert json.loads(messages[0].value)["payload"]["email"] == "ann@x.com"
        assert outbox.events == {}

    @pytest.mark.asyncio
    async def test_publish_failure_is_internal_and_keeps_user(
        self, inline_user_service, create_request, publisher, user_repository
    ):
        publisher.fail_with = ConnectionError("broker down")

        with pytest.raises(UserEventError) as exc_info:
            await inline_user_service.create_user(create_request)

        assert exc_info.value.kind is ErrorKind.INTERNAL
        assert exc_info.value.message == "Failed to send message"
        assert "broker down" not in exc_info.value.message
        assert len(user_repository.users) == 1

    @pytest.mark.asyncio
    async def test_duplicate_email(self, inline_user_service, create_request, publisher):
        await inline_user_service.create_user(create_request)

        with pytest.raises(UserAlreadyExistsError):
            await inline_user_service.create_user(create_request)

        assert len(publisher.messages) == 1

    @pytest.mark.asyncio
    async def test_malformed_premise_id_does_not_publish(self, inline_user_service, publisher):
        with pytest.raises(InvalidPremiseIdError):
            await inline_user_service.create_user(request_for(premise_id="42"))

        assert publisher.messages == []


class TestVerifyAccount:
    @pytest.mark.asyncio
    async def test_verify_then_login(self, user_service, auth_service, create_request, publisher):
        """Login is refused before verification and allowed after."""
        await user_service.create_user(create_request)
        with pytest.raises(InactiveAccountError):
            await auth_service.login("ann@x.com", "secret1")

        token = json.loads(publisher.messages[0].value)["payload"]["token"]
        await user_service.verify_account(token)

        response = await auth_service.login("ann@x.com", "secret1")
        assert response.token

    @pytest.mark.asyncio
    async def test_verify_already_active(self, user_service, user_repository, tokens):
        user = make_user(is_active=True)
        await user_repository.create_user(user)

        await user_service.verify_account(tokens.issue(user.id, "admin"))

        assert user_repository.users[user.id].is_active is True

    @pytest.mark.asyncio
    async def test_invalid_token(self, user_service):
        with pytest.raises(InvalidVerificationTokenError) as exc_info:
            await user_service.verify_account("garbage")

        assert exc_info.value.kind is ErrorKind.BAD_REQUEST
        assert exc_info.value.message == "Invalid token"

    @pytest.mark.asyncio
    async def test_expired_token(self, user_service):
        with pytest.raises(InvalidVerificationTokenError):
            await user_service.verify_account(create_test_token(expired=True))

    @pytest.mark.asyncio
    async def test_unknown_user(self, user_service):
        """A valid token for a missing user is a load failure."""
        with pytest.raises(DatabaseError):
            await user_service.verify_account(create_test_token())

    @pytest.mark.asyncio
    async def test_update_failure(self, publisher, tokens, hasher):
        user = make_user()
        repository = MagicMock()
        repository.get_user_by_id = AsyncMock(return_value=RepositoryResult.success(user))
        repository.update_user = AsyncMock(return_value=RepositoryResult.unavailable())
        service = UserService(repository, publisher, tokens, hasher)

        with pytest.raises(DatabaseError):
            await service.verify_account(tokens.issue(user.id, "admin"))

        updated = repository.update_user.call_args.args[0]
        assert updated.is_active is True


class TestGetUsers:
    @pytest.mark.asyncio
    async def test_pagination(self, user_service, user_repository):
        for i in range(3):
            await user_repository.create_user(
                make_user(
                    user_id=f"00000000-0000-4000-8000-00000000000{i}",
                    email=f"user{i}@x.com",
                    password="$2b$04$hash",
                )
            )

        page = await user_service.get_users(page=1, limit=2)

        assert len(page.data) == 2
        assert page.pagination.total_pages == 2
        assert page.pagination.page == 1
        assert page.pagination.limit == 2
        assert all(u.password == "" for u in page.data)

    @pytest.mark.asyncio
    async def test_empty(self, user_service):
        page = await user_service.get_users(page=1, limit=10)
        assert page.data == []
        assert page.pagination.total_pages == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 5)])
    async def test_invalid_pagination(self, user_service, page, limit):
        with pytest.raises(InvalidPaginationError) as exc_info:
            await user_service.get_users(page=page, limit=limit)
        assert exc_info.value.kind is ErrorKind.BAD_REQUEST

    @pytest.mark.asyncio
    async def test_count_failure(self, publisher, tokens, hasher):
        repository = MagicMock()
        repository.count_users = AsyncMock(return_value=RepositoryResult.unavailable())
        service = UserService(repository, publisher, tokens, hasher)

        with pytest.raises(DatabaseError):
            await service.get_users(1, 10)


class TestGetUserById:
    @pytest.mark.asyncio
    async def test_found(self, user_service, user_repository):
        user = make_user(password="$2b$04$hash")
        await user_repository.create_user(user)

        found = await user_service.get_user_by_id(user.id)

        assert found.id == user.id
        assert found.password == ""

    @pytest.mark.asyncio
    async def test_not_found(self, user_service):
        with pytest.raises(UserNotFoundError) as exc_info:
            await user_service.get_user_by_id("99999999-9999-4999-8999-999999999999")
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, user_service):
        with pytest.raises(UserNotFoundError):
            await user_service.get_user_by_id("not-a-uuid")

    @pytest.mark.asyncio
    async def test_repository_failure(self, publisher, tokens, hasher):
        repository = MagicMock()
        repository.get_user_by_id = AsyncMock(return_value=RepositoryResult.unavailable())
        service = UserService(repository, publisher, tokens, hasher)

        with pytest.raises(DatabaseError):
            await service.get_user_by_id("00000000-0000-4000-8000-000000000001")
