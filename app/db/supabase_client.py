"""
Shared Supabase client for the task tables.

The client is created lazily on first use and reused by every request.
With SUPABASE_SERVICE_ROLE_KEY set the backend bypasses row level security
and can read and write every task; otherwise it runs with the anon key and
the table policies apply.
"""

import logging
import threading

from supabase import Client, create_client

from app.config import get_settings

logger = logging.getLogger(__name__)

_client: Client | None = None
_lock = threading.Lock()


def get_supabase_client() -> Client:
    """
    Return the shared Supabase client, creating it on first call.

    Returns:
        Client: Shared Supabase client instance

    Raises:
        ValidationError: If SUPABASE_URL or SUPABASE_KEY are missing or invalid
        ValueError: If the client cannot be created
    """
    global _client
    if _client is not None:
        return _client

    with _lock:
        if _client is None:
            settings = get_settings()
            use_service_role = settings.supabase_service_role_key is not None
            key = settings.supabase_service_role_key or settings.supabase_key
            try:
                _client = create_client(settings.supabase_url, key)
            except Exception as e:
                raise ValueError(f"Failed to create Supabase client: {str(e)}") from e
            logger.info(
                f"Supabase client ready ({'service role' if use_service_role else 'anon'} key)"
            )
        return _client


def reset_supabase_client() -> None:
    """Forget the shared client so the next call rebuilds it from current settings."""
    global _client
    with _lock:
        _client = None
