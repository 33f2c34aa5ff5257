"""
User repository implementations.

SupabaseUserRepository covers these tables:
- users
- user_premises
- outbox_events (written only by the register_user function)

Registration goes through the ``register_user`` Postgres function so the
user, its premise association and its outbox event commit together.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from shared.repository import BaseRepository, RepositoryResult
from modules.events.models import OutboxEvent
from modules.events.outbox import InMemoryOutboxStore

from .interfaces import IUserRepository
from .models import User, UserPremise

USERS_TABLE = "users"
USER_PREMISES_TABLE = "user_premises"
REGISTER_USER_FUNCTION = "register_user"

USERS_EMAIL_CONSTRAINT = "users_email_key"
USER_PREMISES_PREMISE_FK = "user_premises_premise_id_fkey"


class SupabaseUserRepository(BaseRepository[User], IUserRepository):
    """
    Repository for user data access in Supabase.

    Note: This repository does NOT hash passwords or check permissions.
    The service layer owns both.
    """

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def create_user(
        self,
        user: User,
        premise_id: Optional[UUID] = None,
        event: Optional[OutboxEvent] = None,
    ) -> RepositoryResult[User]:
        params: dict[str, Any] = {
            "p_id": user.id,
            "p_name": user.name,
            "p_email": user.email,
            "p_password": user.password,
            "p_role": user.role.value,
            "p_is_active": user.is_active,
            "p_created_at": user.created_at.isoformat(),
            "p_premise_id": str(premise_id) if premise_id else None,
            "p_event_id": event.id if event else None,
            "p_event_topic": event.topic if event else None,
            "p_event_key": event.key if event else None,
            "p_event_value": event.value if event else None,
        }
        result = await self._execute(self._db.rpc(REGISTER_USER_FUNCTION, params))
        if not result.ok:
            return result

        row = result.value.data
        # Set-returning functions come back as a list
        if isinstance(row, list):
            if not row:
                return RepositoryResult.unavailable(
                    cause=RuntimeError(f"{REGISTER_USER_FUNCTION} returned no row")
                )
            row = row[0]
        return RepositoryResult.success(self._map_to_user(row))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_user_by_id(self, user_id: str) -> RepositoryResult[User]:
        return await self._get_one("id", user_id)

    async def get_user_by_email(self, email: str) -> RepositoryResult[User]:
        return await self._get_one("email", email)

    async def list_users(self, page: int, limit: int) -> RepositoryResult[list[User]]:
        offset = (page - 1) * limit
        result = await self._execute(
            self._db.table(USERS_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
        )
        if not result.ok:
            return result
        return RepositoryResult.success([self._map_to_user(row) for row in result.value.data])

    async def count_users(self) -> RepositoryResult[int]:
        result = await self._execute(
            self._db.table(USERS_TABLE).select("id", count="exact").limit(1)
        )
        if not result.ok:
            return result
        return RepositoryResult.success(result.value.count or 0)

    async def get_user_premises(self, user_id: str) -> RepositoryResult[list[UserPremise]]:
        result = await self._execute(
            self._db.table(USER_PREMISES_TABLE).select("*").eq("user_id", user_id)
        )
        if not result.ok:
            return result
        return RepositoryResult.success([UserPremise.model_validate(row) for row in result.value.data])

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    async def update_user(self, user: User) -> RepositoryResult[User]:
        data = {
            "name": user.name,
            "email": user.email,
            "role": user.role.value,
            "is_active": user.is_active,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        result = await self._execute(
            self._db.table(USERS_TABLE).update(data).eq("id", user.id)
        )
        if not result.ok:
            return result
        if not result.value.data:
            return RepositoryResult.not_found()
        return RepositoryResult.success(self._map_to_user(result.value.data[0]))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _get_one(self, column: str, value: str) -> RepositoryResult[User]:
        result = await self._execute(
            self._db.table(USERS_TABLE).select("*").eq(column, value).limit(1)
        )
        if not result.ok:
            return result
        if not result.value.data:
            return RepositoryResult.not_found()
        return RepositoryResult.success(self._map_to_user(result.value.data[0]))

    def _map_to_user(self, row: dict[str, Any]) -> User:
        return User.model_validate(row)


class InMemoryUserRepository(IUserRepository):
    """
    User repository kept in dicts.

    For testing and development. create_user checks every constraint before
    writing anything, so a failed call leaves no partial state. Events go to
    the given InMemoryOutboxStore in the same step.

    Args:
        outbox: Store that receives outbox events
        premises: Known premise ids. None accepts any premise.
    """

    def __init__(
        self,
        outbox: Optional[InMemoryOutboxStore] = None,
        premises: Optional[set[str]] = None,
    ) -> None:
        self.users: dict[str, User] = {}
        self.user_premises: list[UserPremise] = []
        self.premises = premises
        self.outbox = outbox

    async def create_user(
        self,
        user: User,
        premise_id: Optional[UUID] = None,
        event: Optional[OutboxEvent] = None,
    ) -> RepositoryResult[User]:
        if user.id in self.users:
            return RepositoryResult.conflict(constraint="users_pkey")
        if any(u.email == user.email for u in self.users.values()):
            return RepositoryResult.conflict(constraint=USERS_EMAIL_CONSTRAINT)
        if premise_id is not None and self.premises is not None and str(premise_id) not in self.premises:
            return RepositoryResult.constraint_violation(constraint=USER_PREMISES_PREMISE_FK)
        if event is not None and self.outbox is None:
            return RepositoryResult.unavailable(cause=RuntimeError("No outbox configured"))

        now = datetime.now(timezone.utc)
        stored = user.model_copy(update={"updated_at": now})
        self.users[stored.id] = stored
        if premise_id is not None and not self._has_premise(stored.id, str(premise_id)):
            self.user_premises.append(
                UserPremise(user_id=stored.id, premise_id=str(premise_id), created_at=now)
            )
        if event is not None:
            self.outbox.add(event)
        return RepositoryResult.success(stored)

    async def get_user_by_id(self, user_id: str) -> RepositoryResult[User]:
        user = self.users.get(user_id)
        if user is None:
            return RepositoryResult.not_found()
        return RepositoryResult.success(user)

    async def get_user_by_email(self, email: str) -> RepositoryResult[User]:
        for user in self.users.values():
            if user.email == email:
                return RepositoryResult.success(user)
        return RepositoryResult.not_found()

    async def list_users(self, page: int, limit: int) -> RepositoryResult[list[User]]:
        ordered = sorted(self.users.values(), key=lambda u: u.created_at, reverse=True)
        offset = (page - 1) * limit
        return RepositoryResult.success(ordered[offset:offset + limit])

    async def count_users(self) -> RepositoryResult[int]:
        return RepositoryResult.success(len(self.users))

    async def update_user(self, user: User) -> RepositoryResult[User]:
        current = self.users.get(user.id)
        if current is None:
            return RepositoryResult.not_found()
        if any(u.email == user.email and u.id != user.id for u in self.users.values()):
            return RepositoryResult.conflict(constraint=USERS_EMAIL_CONSTRAINT)
        updated = current.model_copy(
            update={
                "name": user.name,
                "email": user.email,
                "role": user.role,
                "is_active": user.is_active,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self.users[user.id] = updated
        return RepositoryResult.success(updated)

    async def get_user_premises(self, user_id: str) -> RepositoryResult[list[UserPremise]]:
        return RepositoryResult.success([p for p in self.user_premises if p.user_id == user_id])

    def _has_premise(self, user_id: str, premise_id: str) -> bool:
        return any(p.user_id == user_id and p.premise_id == premise_id for p in self.user_premises)
