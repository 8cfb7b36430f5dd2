"""
FastAPI dependency injection functions.
"""

from fastapi import Depends, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client

from lockadmin.core.database import get_supabase_client

# Optional bearer scheme: the quick-unlock route also accepts ?token=
bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Client:
    """Dependency: get Supabase client."""
    return get_supabase_client()


async def get_unlock_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    token: str | None = Query(default=None),
) -> str | None:
    """Dependency: the caller-supplied quick-unlock token, if any."""
    if credentials is not None:
        return credentials.credentials
    return token or None
