"""
User endpoints.

Registration and lookups require a bearer token; account verification is
public because the token comes from the user.created event.
"""

from fastapi import APIRouter, Depends, Query, status

from shared.models import AuthenticatedUser
from modules.users.interfaces import IUserService
from modules.users.models import (
    CreateUserRequest,
    PaginatedUsers,
    User,
    VerifyAccountRequest,
)

from ..dependencies import get_user_service
from ..middleware.auth import get_current_user

router = APIRouter()


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: CreateUserRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    users: IUserService = Depends(get_user_service),
) -> User:
    """Register a new, inactive user."""
    return await users.create_user(request)


@router.get("", response_model=PaginatedUsers)
async def list_users(
    page: int = Query(1, description="1-based page number"),
    limit: int = Query(10, description="Page size"),
    user: AuthenticatedUser = Depends(get_current_user),
    users: IUserService = Depends(get_user_service),
) -> PaginatedUsers:
    """List users, newest first."""
    return await users.get_users(page, limit)


@router.post("/verify", status_code=status.HTTP_204_NO_CONTENT)
async def verify_account(
    request: VerifyAccountRequest,
    users: IUserService = Depends(get_user_service),
) -> None:
    """Activate the account referenced by a verification token."""
    await users.verify_account(request.token)


@router.get("/me", response_model=User)
async def get_current_user_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    users: IUserService = Depends(get_user_service),
) -> User:
    """
    Get the current user's profile.

    Requires authentication.
    """
    return await users.get_user_by_id(user.id)


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    users: IUserService = Depends(get_user_service),
) -> User:
    """Get a user by id."""
    return await users.get_user_by_id(user_id)
