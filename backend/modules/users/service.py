"""
User service implementation.

Registration, account verification and user lookup.

Registration announces every new user with a ``user.created`` event carrying
a verification token. Two delivery modes exist:

- With an OutboxRelay (the default wiring), the event is stored in the same
  transaction as the user and delivered right after commit. A broker outage
  leaves the event pending for the relay loop and registration still
  succeeds.
- Without one, the event is published inline after the user is stored and a
  broker failure is reported to the caller. The user row is kept.
"""

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from shared.context import deadline
from shared.exceptions import DatabaseError, RequestTimeoutError
from shared.repository import RepositoryResult, RepositoryStatus
from modules.auth.credentials import PasswordHasher, TokenIssuer
from modules.auth.exceptions import ExpiredTokenError, InvalidTokenError
from modules.events.exceptions import EventPublishError
from modules.events.interfaces import IEventPublisher
from modules.events.models import USER_CREATED_EVENT, EventEnvelope, OutboxEvent
from modules.events.outbox import OutboxRelay

from .exceptions import (
    InvalidPaginationError,
    InvalidPremiseIdError,
    InvalidVerificationTokenError,
    UserAlreadyExistsError,
    UserEventError,
    UserNotFoundError,
)
from .interfaces import IUserRepository, IUserService
from .models import CreateUserRequest, PaginatedUsers, Pagination, User
from .repository import USERS_EMAIL_CONSTRAINT


class UserService(IUserService):
    """
    Implementation of the user service.

    Stateless apart from its collaborators; safe to share between requests.
    """

    def __init__(
        self,
        repository: IUserRepository,
        publisher: IEventPublisher,
        tokens: TokenIssuer,
        hasher: PasswordHasher,
        relay: Optional[OutboxRelay] = None,
        topic: str = USER_CREATED_EVENT,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            repository: User persistence
            publisher: Event publisher used when no relay is configured
            tokens: Token issuer/parser
            hasher: Password hasher
            relay: Outbox relay; enables transactional event delivery
            topic: Topic for user.created events
            timeout: Deadline in seconds for each operation
            logger: Logger for user events
        """
        self._repository = repository
        self._publisher = publisher
        self._tokens = tokens
        self._hasher = hasher
        self._relay = relay
        self._topic = topic
        self._timeout = timeout
        self._logger = logger or logging.getLogger(__name__)

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def create_user(self, request: CreateUserRequest) -> User:
        premise_id = _parse_premise_id(request.premise_id)
        # bcrypt is CPU bound; keep it off the event loop
        password_hash = await asyncio.to_thread(self._hasher.hash, request.password)

        now = datetime.now(timezone.utc)
        user = User(
            id=str(uuid4()),
            name=request.name,
            email=str(request.email),
            password=password_hash,
            role=request.role,
            is_active=False,
            created_at=now,
            updated_at=now,
        )

        if self._relay is not None:
            created = await self._create_with_outbox(user, premise_id)
        else:
            created = await self._create_and_publish(user, premise_id)
        return created.without_password()

    async def _create_with_outbox(self, user: User, premise_id: Optional[UUID]) -> User:
        token = self._tokens.issue(user.id, user.role.value)
        event = OutboxEvent(
            id=str(uuid4()),
            topic=self._topic,
            key=user.id,
            value=self._serialize_event(user, token),
        )

        async with deadline(self._timeout, "create user"):
            result = await self._repository.create_user(user, premise_id, event)
        created = self._check_created(result, user)

        try:
            async with deadline(self._timeout, "deliver user.created"):
                delivered = await self._relay.deliver(event)
        except RequestTimeoutError:
            delivered = False
        if not delivered:
            self._logger.warning(
                "user.created left in outbox for retry",
                extra={"user_id": created.id, "event_id": event.id},
            )
        return created

    async def _create_and_publish(self, user: User, premise_id: Optional[UUID]) -> User:
        async with deadline(self._timeout, "create user"):
            result = await self._repository.create_user(user, premise_id)
        created = self._check_created(result, user)

        token = self._tokens.issue(created.id, created.role.value)
        value = self._serialize_event(created, token)

        try:
            async with deadline(self._timeout, "publish user.created"):
                await self._publisher.publish(
                    self._topic, created.id.encode("utf-8"), value.encode("utf-8")
                )
        except EventPublishError as exc:
            # No compensating delete: the user stays registered but inactive
            self._logger.error(
                "Failed to publish user.created",
                extra={"user_id": created.id, "topic": self._topic},
                exc_info=exc,
            )
            raise UserEventError("Failed to send message", cause=exc) from exc
        return created

    def _check_created(self, result: RepositoryResult[User], user: User) -> User:
        if result.status is RepositoryStatus.CONFLICT and result.constraint in (None, USERS_EMAIL_CONSTRAINT):
            self._logger.info("Registration rejected: email already exists")
            raise UserAlreadyExistsError(constraint=result.constraint, cause=result.cause)
        if not result.ok:
            raise DatabaseError("create user", cause=result.cause)
        self._logger.info("User created", extra={"user_id": user.id, "role": user.role.value})
        return result.value

    def _serialize_event(self, user: User, token: str) -> str:
        envelope = EventEnvelope(
            type=USER_CREATED_EVENT,
            payload={"token": token, "email": user.email},
        )
        try:
            return envelope.to_json()
        except (ValueError, TypeError) as exc:
            raise UserEventError("Failed to marshal message", cause=exc) from exc

    # -------------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------------

    async def verify_account(self, token: str) -> None:
        try:
            claims = self._tokens.parse(token)
        except (InvalidTokenError, ExpiredTokenError) as exc:
            raise InvalidVerificationTokenError(cause=exc) from exc

        async with deadline(self._timeout, "verify account"):
            found = await self._repository.get_user_by_id(claims.user_id)
            if not found.ok:
                raise DatabaseError("get user by id", cause=found.cause)

            user = found.value
            if user.is_active:
                self._logger.info("Account already verified", extra={"user_id": user.id})
                return

            updated = await self._repository.update_user(user.model_copy(update={"is_active": True}))
            if not updated.ok:
                raise DatabaseError("update user", cause=updated.cause)

        self._logger.info("Account verified", extra={"user_id": user.id})

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_users(self, page: int, limit: int) -> PaginatedUsers:
        if page < 1 or limit < 1:
            raise InvalidPaginationError(page, limit)

        async with deadline(self._timeout, "list users"):
            total = await self._repository.count_users()
            if not total.ok:
                raise DatabaseError("count users", cause=total.cause)
            users = await self._repository.list_users(page, limit)
            if not users.ok:
                raise DatabaseError("list users", cause=users.cause)

        return PaginatedUsers(
            data=[u.without_password() for u in users.value],
            pagination=Pagination(
                total_pages=math.ceil(total.value / limit),
                page=page,
                limit=limit,
            ),
        )

    async def get_user_by_id(self, user_id: str) -> User:
        # Ids are UUIDs; anything else cannot match a row
        try:
            UUID(user_id)
        except ValueError:
            raise UserNotFoundError()

        async with deadline(self._timeout, "get user by id"):
            result = await self._repository.get_user_by_id(user_id)

        if result.status is RepositoryStatus.NOT_FOUND:
            raise UserNotFoundError()
        if not result.ok:
            raise DatabaseError("get user by id", cause=result.cause)
        return result.value.without_password()


def _parse_premise_id(premise_id: Optional[str]) -> Optional[UUID]:
    if not premise_id:
        return None
    try:
        return UUID(premise_id)
    except ValueError as exc:
        raise InvalidPremiseIdError(premise_id) from exc
