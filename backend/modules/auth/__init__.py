"""
Authentication module.

Handles password hashing, bearer-token issuance and validation, and login.

Public API:
- IAuthService: Interface for auth operations
- PasswordHasher, TokenIssuer: Credential utilities
- TokenClaims, LoginResponse, TokenValidationResponse: Models
- Auth exceptions: InvalidTokenError, ExpiredTokenError, etc.
"""

from .interfaces import IAuthService
from .credentials import PasswordHasher, TokenIssuer, TOKEN_LIFETIME
from .models import (
    TokenClaims,
    LoginRequest,
    LoginResponse,
    TokenValidationRequest,
    TokenValidationResponse,
)
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
    InvalidCredentialsError,
    InactiveAccountError,
    UserNotFoundError,
    PasswordHashingError,
    TokenSigningError,
)

__all__ = [
    # Interface
    "IAuthService",
    # Credentials
    "PasswordHasher",
    "TokenIssuer",
    "TOKEN_LIFETIME",
    # Models
    "TokenClaims",
    "LoginRequest",
    "LoginResponse",
    "TokenValidationRequest",
    "TokenValidationResponse",
    # Exceptions
    "InvalidTokenError",
    "ExpiredTokenError",
    "MissingTokenError",
    "InvalidCredentialsError",
    "InactiveAccountError",
    "UserNotFoundError",
    "PasswordHashingError",
    "TokenSigningError",
]
