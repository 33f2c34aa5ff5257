"""
Users module data models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, EmailStr, field_validator

# bcrypt rejects or truncates input beyond this many bytes
MAX_PASSWORD_BYTES = 72


class UserRole(str, Enum):
    """Roles a user can be created with. Not evaluated by this service."""

    ADMIN = "admin"
    GUARD = "guard"
    OPERATOR = "operator"


class User(BaseModel):
    """
    A user account.

    ``password`` holds the bcrypt hash inside the service and is excluded from
    every serialization, so it never leaves through the API even if a caller
    forgets to clear it.
    """

    id: str = Field(..., description="User ID (UUID)")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Unique email, case-sensitive as stored")
    password: str = Field(default="", exclude=True, repr=False)
    role: UserRole = Field(..., description="User role")
    is_active: bool = Field(default=False, description="Set once the account is verified")
    created_at: datetime = Field(..., description="Account creation time")
    updated_at: datetime = Field(..., description="Last update time")

    def without_password(self) -> "User":
        """Copy with the password hash cleared."""
        return self.model_copy(update={"password": ""})


class UserPremise(BaseModel):
    """Association between a user and a premise."""

    id: Optional[str] = None
    user_id: str
    premise_id: str
    created_at: Optional[datetime] = None


class CreateUserRequest(BaseModel):
    """Request to register a new user."""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=MAX_PASSWORD_BYTES)
    role: UserRole
    premise_id: Optional[str] = Field(
        default=None,
        description="Premise to assign the user to (UUID); empty means none",
    )

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
        return value


class VerifyAccountRequest(BaseModel):
    """Request to activate an account with the token from the user.created event."""

    token: str = Field(..., min_length=1)


class Pagination(BaseModel):
    """Page metadata for list responses."""

    total_pages: int = Field(..., serialization_alias="totalPages")
    page: int
    limit: int


class PaginatedUsers(BaseModel):
    """One page of users."""

    data: list[User]
    pagination: Pagination
