"""
Bearer authentication dependency.

Validates tokens issued by the login endpoint and exposes the caller's
claims to route handlers. The database is not consulted.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from shared.models import AuthenticatedUser
from modules.auth.credentials import TokenIssuer
from modules.auth.exceptions import MissingTokenError

from ..dependencies import get_token_issuer

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> AuthenticatedUser:
    """
    Dependency that requires authentication.

    Raises:
        MissingTokenError: No bearer credentials on the request
        InvalidTokenError, ExpiredTokenError: The token does not parse

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthenticatedUser = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is None or not credentials.credentials:
        raise MissingTokenError()

    claims = tokens.parse(credentials.credentials)
    return AuthenticatedUser(id=claims.user_id, role=claims.role, expires_at=claims.expires_at)
