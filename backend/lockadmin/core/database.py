"""
Database connections: Supabase client setup.
"""

from functools import lru_cache
from supabase import create_client, Client

from lockadmin.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    """Get the Supabase client (singleton).

    Uses the service_role key when configured (the dashboard writes commands
    and device rows), otherwise falls back to the anon key.
    """
    settings = get_settings()
    key = settings.SUPABASE_SERVICE_KEY or settings.SUPABASE_KEY
    if not key:
        raise ValueError("Neither SUPABASE_SERVICE_KEY nor SUPABASE_KEY is configured")
    return create_client(settings.SUPABASE_URL, key)
