"""
Users module exceptions.
"""

from typing import Optional

from shared.exceptions import (
    BadRequestError,
    ConflictError,
    InternalError,
    NotFoundError,
)


class UserNotFoundError(NotFoundError):
    """Raised when no user matches the given identity."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, code="USER_NOT_FOUND")


class UserAlreadyExistsError(ConflictError):
    """Raised when the email is already registered."""

    def __init__(self, constraint: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(
            "User with this email already exists",
            code="USER_ALREADY_EXISTS",
            cause=cause,
        )
        self.constraint = constraint


class InvalidPremiseIdError(BadRequestError):
    """Raised when the premise id is not a UUID."""

    def __init__(self, premise_id: str):
        super().__init__(
            "Invalid premise id",
            code="INVALID_PREMISE_ID",
            details={"premise_id": premise_id},
        )


class InvalidVerificationTokenError(BadRequestError):
    """Raised when an account verification token cannot be parsed."""

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__("Invalid token", code="INVALID_VERIFICATION_TOKEN", cause=cause)


class InvalidPaginationError(BadRequestError):
    """Raised for a page or limit below 1."""

    def __init__(self, page: int, limit: int):
        super().__init__(
            "Invalid pagination parameters",
            code="INVALID_PAGINATION",
            details={"page": page, "limit": limit},
        )


class UserEventError(InternalError):
    """Raised when the user.created event cannot be built or sent."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="USER_EVENT_FAILED", cause=cause)
