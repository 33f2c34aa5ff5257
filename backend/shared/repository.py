"""
Base repository class and result types for database access.

Repositories never raise for failures they can classify. They return a
RepositoryResult whose status is one of a closed set of outcomes, and the
service layer decides what each outcome means for its operation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

import httpx
from postgrest.exceptions import APIError


T = TypeVar("T")


# PostgreSQL SQLSTATE codes surfaced by PostgREST
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"
CHECK_VIOLATION = "23514"
INVALID_TEXT_REPRESENTATION = "22P02"
# PostgREST: .single() matched zero rows
NO_ROWS = "PGRST116"

CONSTRAINT_VIOLATION_CODES = frozenset(
    {FOREIGN_KEY_VIOLATION, NOT_NULL_VIOLATION, CHECK_VIOLATION, INVALID_TEXT_REPRESENTATION}
)


class RepositoryStatus(str, Enum):
    """Every outcome a repository call can report."""

    OK = "ok"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    CONSTRAINT_VIOLATION = "constraint_violation"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class RepositoryResult(Generic[T]):
    """
    Outcome of a repository call.

    Contract:
      - status OK => value holds the payload (may be None for commands)
      - any other status => value is None; constraint names the violated
        constraint when the store reported one; cause keeps the driver error
        for logging only
    """

    status: RepositoryStatus
    value: Optional[T] = None
    constraint: Optional[str] = None
    cause: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status is RepositoryStatus.OK

    def unwrap(self) -> T:
        """Return the value or raise RepositoryError for a failed result."""
        if not self.ok:
            raise RepositoryError(self)
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: Optional[T] = None) -> "RepositoryResult[T]":
        return cls(RepositoryStatus.OK, value=value)

    @classmethod
    def not_found(cls) -> "RepositoryResult[T]":
        return cls(RepositoryStatus.NOT_FOUND)

    @classmethod
    def conflict(
        cls,
        constraint: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> "RepositoryResult[T]":
        return cls(RepositoryStatus.CONFLICT, constraint=constraint, cause=cause)

    @classmethod
    def constraint_violation(
        cls,
        constraint: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> "RepositoryResult[T]":
        return cls(RepositoryStatus.CONSTRAINT_VIOLATION, constraint=constraint, cause=cause)

    @classmethod
    def unavailable(cls, cause: Optional[BaseException] = None) -> "RepositoryResult[T]":
        return cls(RepositoryStatus.UNAVAILABLE, cause=cause)


class RepositoryError(Exception):
    """Raised by RepositoryResult.unwrap() for a non-OK result."""

    def __init__(self, result: RepositoryResult[Any]):
        super().__init__(f"Repository call failed: {result.status.value}")
        self.result = result
        self.status = result.status
        if result.cause is not None:
            self.__cause__ = result.cause


def classify_api_error(exc: APIError) -> RepositoryResult[Any]:
    """Map a PostgREST error to a result using its SQLSTATE code."""
    code = exc.code or ""
    constraint = exc.hint or None
    if code == UNIQUE_VIOLATION:
        return RepositoryResult.conflict(constraint=constraint, cause=exc)
    if code in CONSTRAINT_VIOLATION_CODES:
        return RepositoryResult.constraint_violation(constraint=constraint, cause=exc)
    if code == NO_ROWS:
        return RepositoryResult.not_found()
    return RepositoryResult.unavailable(cause=exc)


class BaseRepository(Generic[T]):
    """
    Base class for Supabase-backed repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - _execute(), which runs a query builder and turns driver failures into
      RepositoryResult values

    Subclasses implement domain-specific data access methods and handle
    dict-to-Pydantic model mapping internally.

    Example:
        class UserRepository(BaseRepository[User]):
            async def get_user_by_id(self, user_id: str) -> RepositoryResult[User]:
                result = await self._execute(
                    self._db.table("users").select("*").eq("id", user_id)
                )
                if not result.ok:
                    return result
                if not result.value.data:
                    return RepositoryResult.not_found()
                return RepositoryResult.success(self._map_to_user(result.value.data[0]))
    """

    def __init__(self, db: Any) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase async client instance for database operations.
        """
        self._db = db

    async def _execute(self, query: Any) -> RepositoryResult[Any]:
        """Execute a PostgREST query builder and classify failures."""
        try:
            response = await query.execute()
        except APIError as exc:
            return classify_api_error(exc)
        except httpx.HTTPError as exc:
            return RepositoryResult.unavailable(cause=exc)
        return RepositoryResult.success(response)
