"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime
from pydantic import BaseModel, Field, EmailStr


class TokenClaims(BaseModel):
    """Decoded bearer-token payload."""

    user_id: str = Field(..., description="Subject user ID")
    role: str = Field(..., description="User role at issuance")
    issued_at: datetime = Field(..., description="Issued-at (iat)")
    expires_at: datetime = Field(..., description="Expiry (exp), 24h after issuance")

    model_config = {"frozen": True}


class LoginRequest(BaseModel):
    """Credentials submitted to the login endpoint."""

    email: EmailStr = Field(..., max_length=255, description="Account email")
    password: str = Field(..., min_length=1, max_length=72, description="Plaintext password")


class LoginResponse(BaseModel):
    """Issued bearer token."""

    token: str = Field(..., description="Signed bearer token")


class TokenValidationRequest(BaseModel):
    """Request to validate a token."""

    token: str = Field(..., min_length=1, description="JWT token to validate")


class TokenValidationResponse(BaseModel):
    """Response from token validation."""

    valid: bool = Field(..., description="Whether the token is valid")
