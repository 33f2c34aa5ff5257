"""
Database client factory for Supabase.

Provides the service-role async client used by the repositories. The client
is created once, at application startup, and reused by every request.
"""

from typing import Optional
from supabase import AsyncClient, acreate_client

from .config import Settings, get_settings

# Module-level client cache
_service_client: Optional[AsyncClient] = None


async def get_supabase_client(settings: Optional[Settings] = None) -> AsyncClient:
    """
    Get Supabase async client with service role (bypasses RLS).

    The service role is required because users are registered before they
    have any session of their own.

    Returns:
        Supabase client configured with service role key

    Raises:
        RuntimeError: If the Supabase URL or service role key is missing
    """
    global _service_client

    if _service_client is None:
        settings = settings or get_settings()
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError(
                "Supabase configuration missing. "
                "Set SCS_USER_SUPABASE_URL and SCS_USER_SUPABASE_SERVICE_ROLE_KEY environment variables."
            )
        _service_client = await acreate_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


def reset_client_cache() -> None:
    """
    Reset the cached database client.

    Useful for testing or when configuration changes.
    """
    global _service_client
    _service_client = None
