"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

Backends are chosen from settings: ``storage_backend`` selects Supabase or
in-memory persistence, ``event_transport`` selects Kafka or an in-memory
publisher. In-memory wiring needs no startup() call, which keeps tests free
of network access.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Optional

from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.credentials import PasswordHasher, TokenIssuer
    from modules.auth.interfaces import IAuthService
    from modules.events.interfaces import IEventPublisher, IOutboxStore
    from modules.events.outbox import OutboxRelay
    from modules.users.interfaces import IUserRepository, IUserService


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access and cached
    as singletons within the container. Long-lived connections (Supabase
    client, Kafka producer, outbox relay task) are opened in startup() and
    released in shutdown().
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db: Any = None
        self._tokens: "TokenIssuer | None" = None
        self._hasher: "PasswordHasher | None" = None
        self._publisher: "IEventPublisher | None" = None
        self._outbox_store: "IOutboxStore | None" = None
        self._relay: "OutboxRelay | None" = None
        self._user_repository: "IUserRepository | None" = None
        self._auth_service: "IAuthService | None" = None
        self._user_service: "IUserService | None" = None
        self._relay_stop: Optional[asyncio.Event] = None
        self._relay_task: Optional[asyncio.Task] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def startup(self) -> None:
        """
        Open connections and start the outbox relay.

        Raises:
            RuntimeError: If required configuration is missing
            KafkaError: If no broker is reachable
        """
        # Fail before any connection is opened
        self.tokens
        if self._settings.storage_backend == "supabase" and self._db is None:
            from shared.database import get_supabase_client
            self._db = await get_supabase_client(self._settings)
        await self.publisher.start()

        if self.relay is not None and self._relay_task is None:
            self._relay_stop = asyncio.Event()
            self._relay_task = asyncio.create_task(self.relay.run(self._relay_stop))

    async def shutdown(self) -> None:
        """Stop the relay and close the publisher."""
        if self._relay_task is not None:
            self._relay_stop.set()
            await self._relay_task
            self._relay_task = None
            self._relay_stop = None
        if self._publisher is not None:
            await self._publisher.close()

    # -------------------------------------------------------------------------
    # Infrastructure
    # -------------------------------------------------------------------------

    @property
    def db(self) -> Any:
        """Supabase client opened by startup()."""
        if self._db is None:
            raise RuntimeError("Supabase client not initialized. Call startup() first.")
        return self._db

    @property
    def tokens(self) -> "TokenIssuer":
        """Get the token issuer."""
        if self._tokens is None:
            if not self._settings.jwt_secret:
                raise RuntimeError(
                    "JWT secret not configured. Set the SCS_USER_JWT_SECRET environment variable."
                )
            from modules.auth.credentials import TokenIssuer
            self._tokens = TokenIssuer(self._settings.jwt_secret, self._settings.jwt_algorithm)
        return self._tokens

    @property
    def hasher(self) -> "PasswordHasher":
        """Get the password hasher."""
        if self._hasher is None:
            from modules.auth.credentials import PasswordHasher
            self._hasher = PasswordHasher(rounds=self._settings.bcrypt_rounds)
        return self._hasher

    @property
    def publisher(self) -> "IEventPublisher":
        """Get the event publisher."""
        if self._publisher is None:
            from modules.events.publisher import InMemoryEventPublisher, KafkaEventPublisher
            if self._settings.event_transport == "memory":
                self._publisher = InMemoryEventPublisher()
            else:
                self._publisher = KafkaEventPublisher(
                    self._settings.kafka_bootstrap_servers,
                    client_id=self._settings.kafka_client_id,
                )
        return self._publisher

    @property
    def outbox_store(self) -> "IOutboxStore":
        """Get the outbox store."""
        if self._outbox_store is None:
            from modules.events.outbox import InMemoryOutboxStore, SupabaseOutboxStore
            if self._settings.storage_backend == "memory":
                self._outbox_store = InMemoryOutboxStore()
            else:
                self._outbox_store = SupabaseOutboxStore(self.db)
        return self._outbox_store

    @property
    def relay(self) -> "OutboxRelay | None":
        """Get the outbox relay, or None when inline publishing is configured."""
        if not self._settings.user_events_outbox_enabled:
            return None
        if self._relay is None:
            from modules.events.outbox import OutboxRelay
            self._relay = OutboxRelay(
                self.outbox_store,
                self.publisher,
                batch_size=self._settings.outbox_batch_size,
                max_attempts=self._settings.outbox_max_attempts,
                poll_interval=self._settings.outbox_poll_interval_seconds,
            )
        return self._relay

    # -------------------------------------------------------------------------
    # Repositories and services
    # -------------------------------------------------------------------------

    @property
    def user_repository(self) -> "IUserRepository":
        """Get the user repository instance."""
        if self._user_repository is None:
            from modules.users.repository import InMemoryUserRepository, SupabaseUserRepository
            if self._settings.storage_backend == "memory":
                self._user_repository = InMemoryUserRepository(outbox=self.outbox_store)
            else:
                self._user_repository = SupabaseUserRepository(self.db)
        return self._user_repository

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService(
                repository=self.user_repository,
                tokens=self.tokens,
                hasher=self.hasher,
                unknown_email_policy=self._settings.login_unknown_email_policy,
                require_active=self._settings.login_require_active,
                timeout=self._settings.request_timeout_seconds,
            )
        return self._auth_service

    @property
    def users(self) -> "IUserService":
        """Get the user service instance."""
        if self._user_service is None:
            from modules.users.service import UserService
            self._user_service = UserService(
                repository=self.user_repository,
                publisher=self.publisher,
                tokens=self.tokens,
                hasher=self.hasher,
                relay=self.relay,
                topic=self._settings.user_created_topic,
                timeout=self._settings.request_timeout_seconds,
            )
        return self._user_service

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._tokens = None
        self._hasher = None
        self._publisher = None
        self._outbox_store = None
        self._relay = None
        self._user_repository = None
        self._auth_service = None
        self._user_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install a preconfigured container (used by create_app and tests)."""
    global _container
    _container = container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_user_service() -> "IUserService":
    """FastAPI dependency for user service."""
    return get_container().users


def get_token_issuer() -> "TokenIssuer":
    """FastAPI dependency for the token issuer."""
    return get_container().tokens
