"""
Security utilities: static token check for the quick-unlock endpoint.
"""

import secrets


def verify_unlock_token(expected: str, provided: str | None) -> bool:
    """Check a caller token against QUICK_UNLOCK_TOKEN.

    An empty expected token disables the check.
    """
    if not expected:
        return True
    if not provided:
        return False
    return secrets.compare_digest(provided.encode(), expected.encode())
