"""
Shared infrastructure for the scs-user backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- context: Request-scoped context vars and operation deadlines
- database: Supabase client factory
- exceptions: Error taxonomy (AppError and one base per ErrorKind)
- logger: Logging configuration
- repository: Repository base class and the RepositoryResult type

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .exceptions import (
    ErrorKind,
    AppError,
    ValidationError,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    BadRequestError,
    ConflictError,
    InternalError,
    DatabaseError,
    ExternalServiceError,
    RequestTimeoutError,
)
from .models import AuthenticatedUser
from .repository import RepositoryStatus, RepositoryResult, RepositoryError

__all__ = [
    "Settings",
    "get_settings",
    "ErrorKind",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "BadRequestError",
    "ConflictError",
    "InternalError",
    "DatabaseError",
    "ExternalServiceError",
    "RequestTimeoutError",
    "AuthenticatedUser",
    "RepositoryStatus",
    "RepositoryResult",
    "RepositoryError",
]
