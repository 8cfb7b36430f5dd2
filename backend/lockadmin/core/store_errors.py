"""
PostgREST error classification.

The store reports failures as postgrest APIError with a Postgres or PostgREST
code. A few of them are expected outcomes rather than failures and callers
branch on them explicitly:

  PGRST116  .single() matched zero rows      → "not found", return None/[]
  23505     unique_violation                  → row already exists
  42P01     undefined_table                   → table not migrated yet
"""

import httpx
from postgrest.exceptions import APIError

from lockadmin.core.exceptions import StoreError

NO_ROWS_CODE = "PGRST116"
DUPLICATE_KEY_CODE = "23505"
UNDEFINED_TABLE_CODE = "42P01"


def is_no_rows(error: Exception) -> bool:
    return isinstance(error, APIError) and error.code == NO_ROWS_CODE


def is_duplicate_key(error: Exception) -> bool:
    if not isinstance(error, APIError):
        return False
    return error.code == DUPLICATE_KEY_CODE or "duplicate" in (error.message or "").lower()


def is_undefined_table(error: Exception) -> bool:
    return isinstance(error, APIError) and error.code == UNDEFINED_TABLE_CODE


def to_store_error(error: Exception) -> StoreError:
    """Wrap a postgrest/httpx exception, passing the store's message through."""
    if isinstance(error, APIError):
        return StoreError(
            message=error.message or "Store request failed",
            code=error.code,
            detail=error.details,
        )
    if isinstance(error, httpx.HTTPError):
        return StoreError(message=f"Store unreachable: {error}")
    return StoreError(message=str(error))
