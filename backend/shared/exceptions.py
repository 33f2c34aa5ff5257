"""
Base exception classes for the scs-user backend.

Every failure surfaced by a workflow is an AppError tagged with one of the
ErrorKind values below. Each module defines its own exceptions that inherit
from the per-kind bases, so API error handlers only ever have to look at
``kind`` to pick a status code.
"""

from enum import Enum
from typing import Optional, Any


class ErrorKind(str, Enum):
    """Closed set of failure categories exposed to callers."""

    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    BAD_REQUEST = "BAD_REQUEST"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL_ERROR"
    DATABASE = "DATABASE_ERROR"
    EXTERNAL = "EXTERNAL_SERVICE_ERROR"
    TIMEOUT = "TIMEOUT_ERROR"

    @property
    def status_code(self) -> int:
        """HTTP status class for this kind."""
        return _STATUS_CODES.get(self, 500)


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
}


class AppError(Exception):
    """
    Base exception for all application errors.

    Created at the point of failure and propagated unmodified to the API
    boundary. The optional cause is chained as ``__cause__`` so it shows up
    in server-side logs but is never part of ``to_dict()``.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        if kind is not None:
            self.kind = ErrorKind(kind)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to the ``error`` member of an API response."""
        data: dict[str, Any] = {
            "type": self.kind.value,
            "message": self.message,
        }
        if self.details:
            data["details"] = self.details
        return data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value}, message={self.message!r})"


class ValidationError(AppError):
    """Input validation failed."""

    kind = ErrorKind.VALIDATION


class NotFoundError(AppError):
    """Resource not found."""

    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(AppError):
    """Authentication failed (invalid or missing credentials)."""

    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(AppError):
    """Authorization failed (insufficient permissions)."""

    kind = ErrorKind.FORBIDDEN


class BadRequestError(AppError):
    """Request is well-formed but semantically unusable."""

    kind = ErrorKind.BAD_REQUEST


class ConflictError(AppError):
    """Resource already exists or collides with a uniqueness rule."""

    kind = ErrorKind.CONFLICT


class InternalError(AppError):
    """Unexpected server-side failure."""

    kind = ErrorKind.INTERNAL


class DatabaseError(AppError):
    """A persistence operation failed."""

    kind = ErrorKind.DATABASE

    def __init__(
        self,
        operation: str,
        cause: Optional[BaseException] = None,
        code: Optional[str] = None,
    ):
        super().__init__(
            f"Database operation failed: {operation}",
            code=code,
            cause=cause,
        )
        self.operation = operation


class ExternalServiceError(AppError):
    """Error communicating with an external service."""

    kind = ErrorKind.EXTERNAL

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, code=code, cause=cause)
        self.service = service


class RequestTimeoutError(AppError):
    """An operation did not finish before its deadline."""

    kind = ErrorKind.TIMEOUT
