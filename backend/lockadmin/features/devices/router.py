"""
Devices feature: API routes for device status, UID lists, logs and health.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from supabase import Client

from lockadmin.config import Settings, get_settings
from lockadmin.core.dependencies import get_db
from lockadmin.core.exceptions import StoreError, app_error_to_response
from lockadmin.features.devices.schemas import UidNameUpdate
from lockadmin.features.devices.service import DeviceService

router = APIRouter()


def get_device_service(
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DeviceService:
    return DeviceService(db, online_threshold_seconds=settings.DEVICE_ONLINE_THRESHOLD_SECONDS)


def _dump_all(items) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


@router.get("/devices")
async def list_devices(service: DeviceService = Depends(get_device_service)):
    """All devices with last-seen time and online flag."""
    try:
        return {"data": _dump_all(service.list_devices())}
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/devices/{device_id}")
async def get_device(device_id: str, service: DeviceService = Depends(get_device_service)):
    """Command counts and presence for one device."""
    try:
        detail = service.device_detail(device_id)
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if detail is None:
        return JSONResponse({"error": "Device not found"}, status_code=status.HTTP_404_NOT_FOUND)
    return {"data": detail.model_dump(mode="json")}


@router.get("/devices/{device_id}/whitelist")
async def get_whitelist(device_id: str, service: DeviceService = Depends(get_device_service)):
    try:
        return {"data": _dump_all(service.whitelist(device_id))}
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/devices/{device_id}/blacklist")
async def get_blacklist(device_id: str, service: DeviceService = Depends(get_device_service)):
    try:
        return {"data": _dump_all(service.blacklist(device_id))}
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/devices/{device_id}/pending")
async def get_pending(device_id: str, service: DeviceService = Depends(get_device_service)):
    """Unclassified cards from the last GET_PENDING answer."""
    try:
        return {"data": _dump_all(service.pending_uids(device_id))}
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/devices/{device_id}/logs")
async def get_logs(
    device_id: str,
    limit: int | None = None,
    service: DeviceService = Depends(get_device_service),
    settings: Settings = Depends(get_settings),
):
    try:
        logs = service.access_logs(device_id, limit or settings.ACCESS_LOG_LIMIT)
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {"data": _dump_all(logs)}


@router.get("/devices/{device_id}/health")
async def get_health(device_id: str, service: DeviceService = Depends(get_device_service)):
    """Latest heartbeat; `data` is null until the device first reports."""
    try:
        health = service.device_health(device_id)
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {"data": health.model_dump(mode="json") if health else None}


@router.get("/devices/{device_id}/uid-names")
async def get_uid_names(device_id: str, service: DeviceService = Depends(get_device_service)):
    try:
        return {"data": service.uid_names(device_id)}
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.get("/devices/{device_id}/dashboard")
async def get_dashboard(
    device_id: str,
    service: DeviceService = Depends(get_device_service),
    settings: Settings = Depends(get_settings),
):
    """Everything the device page needs, fetched concurrently."""
    try:
        snapshot = await service.dashboard(
            device_id,
            command_limit=settings.COMMAND_HISTORY_LIMIT,
            log_limit=settings.ACCESS_LOG_LIMIT,
        )
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {"data": snapshot.model_dump(mode="json")}


@router.patch("/uids/{entry_id}")
async def rename_uid(
    entry_id: str,
    data: UidNameUpdate,
    service: DeviceService = Depends(get_device_service),
):
    """Set or clear the human label of a whitelist/blacklist entry."""
    try:
        entry = service.update_uid_name(entry_id, data.name)
    except StoreError as e:
        return app_error_to_response(e, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if entry is None:
        return JSONResponse({"error": "UID entry not found"}, status_code=status.HTTP_404_NOT_FOUND)
    return {"data": entry.model_dump(mode="json")}
