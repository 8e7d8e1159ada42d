"""Shared pytest setup.

Settings are read when ``app.main`` is imported, so the environment is
filled in here before any test module imports the app.
"""

import os

import pytest

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_MAX_REQUESTS", "10000")

from app.config import get_settings  # noqa: E402
from app.db.supabase_client import reset_supabase_client  # noqa: E402
from app.middleware.rate_limit import get_limiter  # noqa: E402


@pytest.fixture(autouse=True)
def reset_shared_state() -> None:
    """Start every test with fresh settings, no Supabase client and empty rate limit counters."""
    get_settings.cache_clear()
    reset_supabase_client()
    get_limiter().reset()
