"""
Authentication module exceptions.

These exceptions are raised by the auth module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import InternalError, UnauthorizedError
from modules.users.exceptions import UserNotFoundError


class InvalidTokenError(UnauthorizedError):
    """Raised when a JWT token is invalid or malformed."""

    def __init__(self, message: str = "Invalid authentication token", cause: Optional[BaseException] = None):
        super().__init__(message, code="INVALID_TOKEN", cause=cause)


class ExpiredTokenError(UnauthorizedError):
    """Raised when a JWT token has expired."""

    def __init__(self, message: str = "Authentication token has expired", cause: Optional[BaseException] = None):
        super().__init__(message, code="TOKEN_EXPIRED", cause=cause)


class MissingTokenError(UnauthorizedError):
    """Raised when no authentication token is provided."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="MISSING_TOKEN")


class InvalidCredentialsError(UnauthorizedError):
    """Raised when the email/password pair does not match an account."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class InactiveAccountError(UnauthorizedError):
    """Raised when an unverified account tries to log in."""

    def __init__(self, message: str = "Account is not active"):
        super().__init__(message, code="ACCOUNT_INACTIVE")


class PasswordHashingError(InternalError):
    """Raised when a password cannot be hashed."""

    def __init__(self, message: str = "Failed to hash password", cause: Optional[BaseException] = None):
        super().__init__(message, code="PASSWORD_HASHING_FAILED", cause=cause)


class TokenSigningError(InternalError):
    """Raised when a token cannot be signed."""

    def __init__(self, message: str = "Failed to generate token", cause: Optional[BaseException] = None):
        super().__init__(message, code="TOKEN_SIGNING_FAILED", cause=cause)
