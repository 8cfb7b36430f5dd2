"""
Commands feature: API routes for queuing and polling device commands.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse
from supabase import Client

from lockadmin.config import Settings, get_settings
from lockadmin.core.dependencies import get_db
from lockadmin.core.exceptions import InvalidCommandError, StoreError, app_error_to_response
from lockadmin.features.commands.schemas import UnlockRequest
from lockadmin.features.commands.service import CommandService

router = APIRouter()


@router.get("/commands/{command_id}")
async def get_command(command_id: str, db: Client = Depends(get_db)):
    """Poll a command by id (used by clients waiting for an ACK)."""
    service = CommandService(db)
    try:
        command = service.get_command(command_id)
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)

    if command is None:
        return JSONResponse({"error": "Command not found"}, status_code=status.HTTP_404_NOT_FOUND)
    return command.model_dump(mode="json")


@router.post("/commands/unlock")
async def unlock_from_dashboard(data: UnlockRequest | None = None, db: Client = Depends(get_db)):
    """Queue a REMOTE_UNLOCK for the device named in the body."""
    if data is None or not data.deviceId:
        return JSONResponse({"error": "Missing deviceId"}, status_code=status.HTTP_400_BAD_REQUEST)

    service = CommandService(db)
    try:
        command = service.send_remote_unlock(data.deviceId)
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {"success": True, "result": command.model_dump(mode="json")}


@router.post("/devices/{device_id}/commands", status_code=status.HTTP_201_CREATED)
async def create_command(
    device_id: str,
    data: Any = Body(default=None),
    db: Client = Depends(get_db),
):
    """Queue any command kind; the body is keyed by `type`."""
    service = CommandService(db)
    try:
        command = service.submit(device_id, data)
    except InvalidCommandError as e:
        return app_error_to_response(e, status.HTTP_400_BAD_REQUEST)
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {"data": command.model_dump(mode="json")}


@router.get("/devices/{device_id}/commands")
async def list_commands(
    device_id: str,
    limit: int | None = None,
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Command history for a device, newest first."""
    service = CommandService(db)
    try:
        commands = service.command_history(device_id, limit or settings.COMMAND_HISTORY_LIMIT)
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {"data": [c.model_dump(mode="json") for c in commands]}
