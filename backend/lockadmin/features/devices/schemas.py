"""
Devices feature: Schemas for device read models.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lockadmin.features.commands.schemas import Command


class DeviceSummary(BaseModel):
    """A `device_overview` row plus presence."""
    device_id: str
    last_command_at: datetime | None = None
    pending_commands: int = 0
    last_health_at: datetime | None = None
    last_seen: datetime | None = None
    online: bool = False


class DeviceDetail(BaseModel):
    device_id: str
    pending_commands: int = 0
    completed_commands: int = 0
    failed_commands: int = 0
    last_command_at: datetime | None = None
    last_health_at: datetime | None = None
    last_seen: datetime | None = None
    online: bool = False


class DeviceUID(BaseModel):
    """A whitelist/blacklist entry (`device_uids`)."""
    id: str
    device_id: str
    uid: str
    name: str | None = None
    state: Literal["WHITELIST", "BLACKLIST"]
    updated_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v)


class PendingUID(BaseModel):
    """A card the device has seen but not classified yet."""
    uid: str
    reported_at: datetime


class AccessLog(BaseModel):
    id: str
    device_id: str
    uid: str | None = None
    event_type: Literal["GRANTED", "DENIED", "PENDING", "REMOTE"]
    logged_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v)


class DeviceHealth(BaseModel):
    """Current heartbeat row (`device_health`), overwritten by the firmware.

    Only the commonly displayed columns are named; the rest pass through.
    """
    model_config = ConfigDict(extra="allow")

    device_id: str
    updated_at: datetime | None = None
    firmware_version: str | None = None
    uptime_seconds: int | None = None
    free_heap_bytes: int | None = None
    total_heap_bytes: int | None = None
    min_free_heap_bytes: int | None = None
    wifi_connected: bool | None = None
    wifi_rssi: int | None = None
    ntp_synced: bool | None = None
    wifi_disconnect_count: int | None = None
    chip_model: int | None = None
    chip_cores: int | None = None
    cpu_freq_mhz: int | None = None
    storage_littlefs_total_bytes: int | None = None
    storage_littlefs_used_bytes: int | None = None
    rfid_healthy: bool | None = None
    rfid_communication_ok: bool | None = None
    rfid_reinit_count: int | None = None
    last_rfid_error: str | None = None
    last_rfid_error_time: str | None = None
    tasks: list[dict] | None = None


class UidNameUpdate(BaseModel):
    """Request to relabel a whitelist/blacklist entry."""
    name: str | None = Field(None, max_length=100)


class DeviceDashboard(BaseModel):
    """Everything the device page shows, fetched in one round."""
    device_id: str
    detail: DeviceDetail | None = None
    pending: list[PendingUID] = []
    whitelist: list[DeviceUID] = []
    blacklist: list[DeviceUID] = []
    commands: list[Command] = []
    logs: list[AccessLog] = []
    uid_names: dict[str, str] = {}
    health: DeviceHealth | None = None
