"""
Authentication module interface.

Other modules should depend on IAuthService, not the concrete implementation.
This enables testing with mocks and future extraction to a microservice.
"""

from typing import Protocol, runtime_checkable

from .models import LoginResponse, TokenValidationResponse


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for authentication operations.

    This protocol defines the contract that the auth module exposes
    to other modules. Implementations must provide all these methods.
    """

    async def login(self, email: str, password: str) -> LoginResponse:
        """
        Exchange an email/password pair for a bearer token.

        Args:
            email: Account email, matched case-sensitively
            password: Plaintext password

        Returns:
            LoginResponse with a token valid for 24 hours

        Raises:
            UnauthorizedError: Wrong password, inactive account, or (under the
                default policy) unknown email
            NotFoundError: Unknown email under the "not_found" policy
            DatabaseError: If the user lookup fails
            InternalError: If the token cannot be signed
        """
        ...

    async def validate_token(self, token: str) -> TokenValidationResponse:
        """
        Validate a bearer token without consulting the database.

        Args:
            token: JWT access token

        Returns:
            TokenValidationResponse with valid=True

        Raises:
            UnauthorizedError: If the token is missing, invalid or expired
        """
        ...
