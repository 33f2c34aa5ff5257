"""
Centralized configuration for the scs-user backend.

All settings are loaded from environment variables (prefix ``SCS_USER_``)
or a ``.env`` file, with sensible defaults for local development.
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SCS_USER_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "scs-user"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = False
    cors_allow_methods: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    cors_allow_headers: list[str] = ["Origin", "Content-Type", "Accept", "Authorization"]

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Credentials
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    bcrypt_rounds: int = 12

    # Persistence
    storage_backend: Literal["supabase", "memory"] = "supabase"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    # Direct Postgres connection, used only by run_migrations.py
    supabase_db_url: str = ""

    # Events
    event_transport: Literal["kafka", "memory"] = "kafka"
    kafka_brokers: str = "localhost:9092"
    kafka_client_id: str = "scs-user"
    user_created_topic: str = "user.created"

    # Outbox relay
    user_events_outbox_enabled: bool = True
    outbox_poll_interval_seconds: float = 5.0
    outbox_batch_size: int = 100
    outbox_max_attempts: int = 10

    # Auth policy
    login_unknown_email_policy: Literal["unauthorized", "not_found"] = "unauthorized"
    login_require_active: bool = True

    # Per-operation deadline for workflow calls
    request_timeout_seconds: float = 30.0

    @property
    def kafka_bootstrap_servers(self) -> list[str]:
        """Broker list parsed from the comma-separated setting."""
        return [b.strip() for b in self.kafka_brokers.split(",") if b.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
