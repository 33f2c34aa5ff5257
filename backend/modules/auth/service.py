"""
Authentication service implementation.

Logs users in against the user repository and validates bearer tokens.
"""

import asyncio
import logging
from typing import Literal, Optional

from shared.context import deadline
from shared.exceptions import DatabaseError
from shared.repository import RepositoryStatus
from modules.users.interfaces import IUserRepository

from .credentials import PasswordHasher, TokenIssuer
from .interfaces import IAuthService
from .models import LoginResponse, TokenValidationResponse
from .exceptions import (
    InactiveAccountError,
    InvalidCredentialsError,
    MissingTokenError,
    UserNotFoundError,
)

UnknownEmailPolicy = Literal["unauthorized", "not_found"]


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Stateless: every call reads what it needs from the repository and the
    token itself. Token validation never consults the database, so a
    deleted or deactivated user keeps a valid token until it expires.
    """

    def __init__(
        self,
        repository: IUserRepository,
        tokens: TokenIssuer,
        hasher: PasswordHasher,
        unknown_email_policy: UnknownEmailPolicy = "unauthorized",
        require_active: bool = True,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            repository: User persistence
            tokens: Token issuer/parser
            hasher: Password hasher
            unknown_email_policy: "unauthorized" hides whether an email is
                registered; "not_found" reports it
            require_active: Reject accounts that have not been verified
            timeout: Deadline in seconds for each operation
            logger: Logger for auth events
        """
        self._repository = repository
        self._tokens = tokens
        self._hasher = hasher
        self._unknown_email_policy = unknown_email_policy
        self._require_active = require_active
        self._timeout = timeout
        self._logger = logger or logging.getLogger(__name__)
        self._dummy_hash: Optional[str] = None

    async def login(self, email: str, password: str) -> LoginResponse:
        """Look up the user, check the password and state, and issue a token."""
        async with deadline(self._timeout, "login"):
            result = await self._repository.get_user_by_email(email)

        if result.status is RepositoryStatus.NOT_FOUND:
            self._logger.info("Login failed: unknown email")
            if self._unknown_email_policy == "not_found":
                raise UserNotFoundError()
            # Spend the same bcrypt work as a real comparison
            await self._verify(await self._get_dummy_hash(), password)
            raise InvalidCredentialsError()
        if not result.ok:
            raise DatabaseError("get user by email", cause=result.cause)

        user = result.value
        if not await self._verify(user.password, password):
            self._logger.info("Login failed: wrong password", extra={"user_id": user.id})
            raise InvalidCredentialsError()

        if self._require_active and not user.is_active:
            self._logger.info("Login failed: inactive account", extra={"user_id": user.id})
            raise InactiveAccountError()

        token = self._tokens.issue(user.id, user.role.value)
        self._logger.info("User logged in", extra={"user_id": user.id})
        return LoginResponse(token=token)

    async def validate_token(self, token: str) -> TokenValidationResponse:
        """Parse the token; any failure surfaces as an UnauthorizedError."""
        if not token:
            raise MissingTokenError()
        self._tokens.parse(token)
        return TokenValidationResponse(valid=True)

    async def _verify(self, password_hash: str, password: str) -> bool:
        """Run bcrypt in a worker thread so the event loop keeps serving."""
        return await asyncio.to_thread(self._hasher.verify, password_hash, password)

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await asyncio.to_thread(self._hasher.hash, "dummy-password-for-timing")
        return self._dummy_hash
