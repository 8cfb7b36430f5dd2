"""
Custom exception classes for unified error handling.
"""

from fastapi.responses import JSONResponse


class AppBaseError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class StoreError(AppBaseError):
    """Raised when the Supabase store rejects a query or is unreachable."""
    def __init__(self, message: str, code: str | None = None, detail: str | None = None):
        self.code = code
        super().__init__(message=message, detail=detail)


class InvalidCommandError(AppBaseError):
    """Raised when a command's uid/payload does not match its type."""
    def __init__(self, message: str):
        super().__init__(message=message, detail="Check the command type and its arguments.")


# ── Utility: convert to a JSON response ──────────────────

def app_error_to_response(error: AppBaseError, status_code: int = 400) -> JSONResponse:
    """Convert an AppBaseError to a JSONResponse with consistent body."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error.message,
            "detail": error.detail,
            "type": type(error).__name__,
        },
    )
