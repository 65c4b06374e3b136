"""Supabase client for the area lifecycle tables and RPCs."""

from functools import lru_cache

from supabase import Client, ClientOptions, create_client

from maturity_engine.core.config import get_settings


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Get the shared Supabase client (service role, cached).

    PostgREST calls time out after SUPABASE_TIMEOUT_SECONDS; the engine
    never retries them.

    Returns:
        Supabase client

    Raises:
        RuntimeError: If the client cannot be created
    """
    settings = get_settings()
    try:
        return create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_ROLE_KEY,
            options=ClientOptions(postgrest_client_timeout=settings.SUPABASE_TIMEOUT_SECONDS),
        )
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Supabase client: {e}") from e
