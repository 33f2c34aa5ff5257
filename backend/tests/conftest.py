"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
Everything runs against in-memory backends; no database or broker is needed.
"""

import pytest
from datetime import datetime, timezone, timedelta
import jwt  # PyJWT

from shared.config import Settings
from modules.auth.credentials import PasswordHasher, TokenIssuer
from modules.auth.service import AuthService
from modules.events.outbox import InMemoryOutboxStore, OutboxRelay
from modules.events.publisher import InMemoryEventPublisher
from modules.users.models import CreateUserRequest, User, UserRole
from modules.users.repository import InMemoryUserRepository
from modules.users.service import UserService


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"

# Cheapest bcrypt cost; production uses 12
TEST_BCRYPT_ROUNDS = 4


def create_test_token(
    user_id: str = "00000000-0000-4000-8000-000000000001",
    role: str = "admin",
    expired: bool = False,
    secret: str = TEST_JWT_SECRET,
) -> str:
    """
    Create a test JWT token for authentication.

    Args:
        user_id: User ID to include in the token
        role: Role claim
        expired: If True, creates an expired token
        secret: Signing key

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    if expired:
        iat = now - timedelta(hours=25)
        exp = now - timedelta(hours=1)
    else:
        iat = now
        exp = now + timedelta(hours=24)

    payload = {
        "sub": user_id,
        "user_id": user_id,
        "role": role,
        "exp": int(exp.timestamp()),
        "iat": int(iat.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def make_user(
    user_id: str = "00000000-0000-4000-8000-000000000001",
    email: str = "ann@x.com",
    is_active: bool = False,
    password: str = "",
    created_at: datetime | None = None,
) -> User:
    """Build a User with sensible defaults."""
    created_at = created_at or datetime.now(timezone.utc)
    return User(
        id=user_id,
        name="Ann",
        email=email,
        password=password,
        role=UserRole.ADMIN,
        is_active=is_active,
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.fixture
def test_settings() -> Settings:
    """Settings wired to in-memory backends."""
    return Settings(
        _env_file=None,
        jwt_secret=TEST_JWT_SECRET,
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
        storage_backend="memory",
        event_transport="memory",
        log_format="console",
    )


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def tokens() -> TokenIssuer:
    return TokenIssuer(TEST_JWT_SECRET)


@pytest.fixture
def outbox() -> InMemoryOutboxStore:
    return InMemoryOutboxStore()


@pytest.fixture
def user_repository(outbox: InMemoryOutboxStore) -> InMemoryUserRepository:
    return InMemoryUserRepository(outbox=outbox)


@pytest.fixture
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def relay(outbox: InMemoryOutboxStore, publisher: InMemoryEventPublisher) -> OutboxRelay:
    return OutboxRelay(outbox, publisher, poll_interval=0.01)


@pytest.fixture
def user_service(user_repository, publisher, tokens, hasher, relay) -> UserService:
    """User service in outbox mode."""
    return UserService(
        repository=user_repository,
        publisher=publisher,
        tokens=tokens,
        hasher=hasher,
        relay=relay,
    )


@pytest.fixture
def inline_user_service(user_repository, publisher, tokens, hasher) -> UserService:
    """User service publishing events inline, without an outbox."""
    return UserService(
        repository=user_repository,
        publisher=publisher,
        tokens=tokens,
        hasher=hasher,
    )


@pytest.fixture
def auth_service(user_repository, tokens, hasher) -> AuthService:
    return AuthService(repository=user_repository, tokens=tokens, hasher=hasher)


@pytest.fixture
def create_request() -> CreateUserRequest:
    return CreateUserRequest(
        name="Ann",
        email="ann@x.com",
        password="secret1",
        role=UserRole.ADMIN,
        premise_id="",
    )


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return "00000000-0000-4000-8000-000000000001"


@pytest.fixture
def auth_token(test_user_id: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}
