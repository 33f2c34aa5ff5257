"""
Authentication endpoints.
"""

from fastapi import APIRouter, Depends

from modules.auth.interfaces import IAuthService
from modules.auth.models import (
    LoginRequest,
    LoginResponse,
    TokenValidationRequest,
    TokenValidationResponse,
)

from ..dependencies import get_auth_service

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    auth: IAuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Exchange email and password for a bearer token."""
    return await auth.login(str(request.email), request.password)


@router.post("/validate-token", response_model=TokenValidationResponse)
async def validate_token(
    request: TokenValidationRequest,
    auth: IAuthService = Depends(get_auth_service),
) -> TokenValidationResponse:
    """
    Check a bearer token.

    Returns ``{"valid": true}``; an invalid or expired token is a 401.
    """
    return await auth.validate_token(request.token)
