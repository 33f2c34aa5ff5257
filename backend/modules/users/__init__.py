"""
Users module.

Registration, account verification and user lookup.

Public API:
- IUserRepository, IUserService: Interfaces
- User, UserRole, CreateUserRequest, PaginatedUsers: Models
- User exceptions: UserAlreadyExistsError, UserNotFoundError, etc.
"""

from .interfaces import IUserRepository, IUserService
from .models import (
    User,
    UserRole,
    UserPremise,
    CreateUserRequest,
    VerifyAccountRequest,
    Pagination,
    PaginatedUsers,
)
from .exceptions import (
    UserNotFoundError,
    UserAlreadyExistsError,
    InvalidPremiseIdError,
    InvalidVerificationTokenError,
    InvalidPaginationError,
    UserEventError,
)

__all__ = [
    # Interfaces
    "IUserRepository",
    "IUserService",
    # Models
    "User",
    "UserRole",
    "UserPremise",
    "CreateUserRequest",
    "VerifyAccountRequest",
    "Pagination",
    "PaginatedUsers",
    # Exceptions
    "UserNotFoundError",
    "UserAlreadyExistsError",
    "InvalidPremiseIdError",
    "InvalidVerificationTokenError",
    "InvalidPaginationError",
    "UserEventError",
]
