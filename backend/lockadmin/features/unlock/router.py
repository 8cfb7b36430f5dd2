"""
Unlock feature: one-shot door unlock for constrained clients.

Made for phone shortcuts and similar callers: GET works as well as POST,
`?format=text` (or `Accept: text/plain`) switches to bare-string replies,
and every response carries wildcard CORS headers. When QUICK_UNLOCK_TOKEN
is set, the caller must present it as a Bearer token or `?token=`.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from supabase import Client

from lockadmin.config import Settings, get_settings
from lockadmin.core.dependencies import get_db, get_unlock_token
from lockadmin.core.exceptions import StoreError
from lockadmin.core.security import verify_unlock_token
from lockadmin.features.commands.service import CommandService

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _wants_text(request: Request) -> bool:
    if request.query_params.get("format") == "text":
        return True
    return "text/plain" in request.headers.get("accept", "")


def _reply(wants_text: bool, status_code: int, text: str, body: dict) -> Response:
    if wants_text:
        return PlainTextResponse(text, status_code=status_code, headers=CORS_HEADERS)
    return JSONResponse(body, status_code=status_code, headers=CORS_HEADERS)


@router.options("/unlock/{device_id}")
async def unlock_preflight(device_id: str):
    """CORS preflight."""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.api_route("/unlock/{device_id}", methods=["GET", "POST"])
async def quick_unlock(
    device_id: str,
    request: Request,
    token: str | None = Depends(get_unlock_token),
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Queue a REMOTE_UNLOCK for `device_id`."""
    wants_text = _wants_text(request)

    if not verify_unlock_token(settings.QUICK_UNLOCK_TOKEN, token):
        logger.warning(f"🔒 Rejected quick unlock for {device_id}: bad token")
        return _reply(
            wants_text,
            status.HTTP_401_UNAUTHORIZED,
            "ERROR: Unauthorized",
            {"success": False, "error": "Unauthorized"},
        )

    device_id = device_id.strip()
    if not device_id:
        return _reply(
            wants_text,
            status.HTTP_400_BAD_REQUEST,
            "ERROR: Device ID required",
            {"success": False, "error": "Device ID required"},
        )

    service = CommandService(db)
    try:
        command = service.send_remote_unlock(device_id)
    except StoreError as e:
        logger.error(f"Quick unlock for {device_id} failed: {e.message}")
        return _reply(
            wants_text,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"ERROR: {e.message}",
            {"success": False, "error": e.message},
        )

    return _reply(
        wants_text,
        status.HTTP_200_OK,
        "OK: Door unlock command sent",
        {
            "success": True,
            "message": "Unlock command sent",
            "command_id": command.id,
            "device_id": device_id,
        },
    )
