"""
Users module interfaces.

Other modules should depend on IUserRepository and IUserService, not on the
Supabase implementation. The auth module reads users through
IUserRepository only.
"""

from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from shared.repository import RepositoryResult
from modules.events.models import OutboxEvent

from .models import CreateUserRequest, PaginatedUsers, User


@runtime_checkable
class IUserRepository(Protocol):
    """
    Persistence contract for users.

    Every method returns a RepositoryResult; failures are reported through
    its status and never raised.
    """

    async def create_user(
        self,
        user: User,
        premise_id: Optional[UUID] = None,
        event: Optional[OutboxEvent] = None,
    ) -> RepositoryResult[User]:
        """
        Insert a user, and optionally its premise association and outbox
        event, in a single transaction.

        The association is only added when it does not exist yet. Either
        every row is written or none is.

        Returns:
            OK with the stored user (password hash included), CONFLICT when
            the email is taken, CONSTRAINT_VIOLATION for an unknown premise,
            UNAVAILABLE when the store cannot be reached
        """
        ...

    async def get_user_by_id(self, user_id: str) -> RepositoryResult[User]:
        """OK with the user, or NOT_FOUND."""
        ...

    async def get_user_by_email(self, email: str) -> RepositoryResult[User]:
        """OK with the user (password hash included), or NOT_FOUND."""
        ...

    async def list_users(self, page: int, limit: int) -> RepositoryResult[list[User]]:
        """
        One page of users, newest first.

        Args:
            page: 1-based page number
            limit: Page size
        """
        ...

    async def count_users(self) -> RepositoryResult[int]:
        """Total number of users."""
        ...

    async def update_user(self, user: User) -> RepositoryResult[User]:
        """
        Persist the mutable fields of an existing user.

        Returns:
            OK with the updated user, or NOT_FOUND if it no longer exists
        """
        ...


@runtime_checkable
class IUserService(Protocol):
    """Interface for registration and account operations."""

    async def create_user(self, request: CreateUserRequest) -> User:
        """
        Register an inactive user and announce it with a user.created event.

        Returns:
            The created user, without its password

        Raises:
            UserAlreadyExistsError: If the email is taken
            InvalidPremiseIdError: If premise_id is not a UUID
        """
        ...

    async def verify_account(self, token: str) -> None:
        """
        Activate the account identified by a verification token.

        Raises:
            InvalidVerificationTokenError: If the token cannot be parsed
        """
        ...

    async def get_users(self, page: int, limit: int) -> PaginatedUsers:
        """One page of users with pagination metadata."""
        ...

    async def get_user_by_id(self, user_id: str) -> User:
        """
        Raises:
            UserNotFoundError: If no user has this id
        """
        ...
