"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    Represents the caller of an authenticated request.

    Populated from bearer-token claims by the auth dependency and made
    available to route handlers. Nothing here has been re-checked against
    the database.
    """

    id: str = Field(..., description="User ID (UUID)")
    role: str = Field(..., description="User role as issued in the token")
    expires_at: datetime = Field(..., description="Token expiry")

    model_config = {
        "frozen": True,  # Make immutable for safety
    }
