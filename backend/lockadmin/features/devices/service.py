"""
Devices feature: read projections over devices, UIDs, logs and health.

Nothing here writes commands. The only write is relabelling a UID entry.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone

from supabase import Client

from lockadmin.core.store_errors import is_no_rows, is_undefined_table, to_store_error
from lockadmin.features.commands.schemas import CommandStatus, CommandType
from lockadmin.features.commands.service import CommandService
from lockadmin.features.devices.presence import is_online, latest_timestamp, parse_timestamp
from lockadmin.features.devices.schemas import (
    AccessLog,
    DeviceDashboard,
    DeviceDetail,
    DeviceHealth,
    DeviceSummary,
    DeviceUID,
    PendingUID,
)

logger = logging.getLogger(__name__)

# Firmware acks GET_PENDING with "PENDING:" followed by a JSON array.
PENDING_RESULT_PREFIX = "PENDING:"


def parse_pending_result(result: str | None) -> list[str]:
    """Extract the UID list from a GET_PENDING result.

    Malformed results yield [] so one bad historical row can't break the page.
    """
    if not result:
        return []
    raw = result.strip()
    if raw.startswith(PENDING_RESULT_PREFIX):
        raw = raw[len(PENDING_RESULT_PREFIX):]
    try:
        uids = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse pending UIDs: {e}")
        return []
    if not isinstance(uids, list):
        logger.error(f"Pending UIDs result is not a list: {type(uids).__name__}")
        return []
    return [u for u in uids if isinstance(u, str) and u]


class DeviceService:
    """Projections used by the device list and device detail pages."""

    def __init__(self, db: Client, online_threshold_seconds: float = 120):
        self.db = db
        self.online_threshold_seconds = online_threshold_seconds

    # ── Device list ──────────────────────────────────────

    def health_timestamps(self) -> dict[str, str]:
        """Latest heartbeat time per device."""
        try:
            result = self.db.table("device_health").select("device_id, updated_at").execute()
        except Exception as e:
            raise to_store_error(e) from e
        return {row["device_id"]: row["updated_at"] for row in result.data if row.get("updated_at")}

    def list_devices(self) -> list[DeviceSummary]:
        try:
            result = (
                self.db.table("device_overview")
                .select("*")
                .order("device_id", desc=False)
                .execute()
            )
        except Exception as e:
            raise to_store_error(e) from e

        heartbeats = self.health_timestamps()
        devices = []
        for row in result.data:
            last_health_at = heartbeats.get(row["device_id"])
            last_seen = latest_timestamp(row.get("last_command_at"), last_health_at)
            devices.append(DeviceSummary(
                device_id=row["device_id"],
                last_command_at=parse_timestamp(row.get("last_command_at")),
                pending_commands=row.get("pending_commands") or 0,
                last_health_at=parse_timestamp(last_health_at),
                last_seen=last_seen,
                online=is_online(last_seen, self.online_threshold_seconds),
            ))
        return devices

    # ── Device detail ────────────────────────────────────

    def device_detail(self, device_id: str) -> DeviceDetail | None:
        """Command counts and presence; None for a device never heard of."""
        detail, _ = self._detail_with_health(device_id)
        return detail

    def _detail_with_health(self, device_id: str) -> tuple[DeviceDetail | None, DeviceHealth | None]:
        try:
            result = (
                self.db.table("device_commands")
                .select("status, created_at")
                .eq("device_id", device_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise to_store_error(e) from e

        health = self.device_health(device_id)
        commands = result.data
        if not commands and health is None:
            return None, None

        counts = {s: 0 for s in CommandStatus}
        for row in commands:
            try:
                counts[CommandStatus(row["status"])] += 1
            except ValueError:
                logger.warning(f"Unknown command status {row['status']!r} for {device_id}")

        last_command_at = commands[0]["created_at"] if commands else None
        last_health_at = health.updated_at if health else None
        # Heartbeats are pushed independently of commands; either may be newer.
        last_seen = latest_timestamp(last_command_at, last_health_at)

        detail = DeviceDetail(
            device_id=device_id,
            pending_commands=counts[CommandStatus.PENDING],
            completed_commands=counts[CommandStatus.DONE],
            failed_commands=counts[CommandStatus.FAILED],
            last_command_at=parse_timestamp(last_command_at),
            last_health_at=last_health_at,
            last_seen=last_seen,
            online=is_online(last_seen, self.online_threshold_seconds),
        )
        return detail, health

    def device_health(self, device_id: str) -> DeviceHealth | None:
        try:
            result = (
                self.db.table("device_health")
                .select("*")
                .eq("device_id", device_id)
                .single()
                .execute()
            )
        except Exception as e:
            if is_no_rows(e):
                return None
            raise to_store_error(e) from e
        return DeviceHealth.model_validate(result.data) if result.data else None

    # ── UIDs ─────────────────────────────────────────────

    def _uids_by_state(self, device_id: str, state: str) -> list[DeviceUID]:
        try:
            result = (
                self.db.table("device_uids")
                .select("*")
                .eq("device_id", device_id)
                .eq("state", state)
                .order("updated_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise to_store_error(e) from e
        return [DeviceUID.model_validate(row) for row in result.data]

    def whitelist(self, device_id: str) -> list[DeviceUID]:
        return self._uids_by_state(device_id, "WHITELIST")

    def blacklist(self, device_id: str) -> list[DeviceUID]:
        return self._uids_by_state(device_id, "BLACKLIST")

    def uid_names(self, device_id: str) -> dict[str, str]:
        """UID → label for every named entry of the device."""
        try:
            result = (
                self.db.table("device_uids")
                .select("uid, name")
                .eq("device_id", device_id)
                .execute()
            )
        except Exception as e:
            raise to_store_error(e) from e
        return {row["uid"]: row["name"] for row in result.data if row.get("name")}

    def update_uid_name(self, entry_id: str, name: str | None) -> DeviceUID | None:
        """Relabel a UID entry; a blank name clears the label."""
        clean_name = name.strip() if name else None
        try:
            result = (
                self.db.table("device_uids")
                .update({"name": clean_name or None})
                .eq("id", entry_id)
                .execute()
            )
        except Exception as e:
            raise to_store_error(e) from e
        return DeviceUID.model_validate(result.data[0]) if result.data else None

    def pending_uids(self, device_id: str) -> list[PendingUID]:
        """Cards reported by the newest acknowledged GET_PENDING command."""
        try:
            result = (
                self.db.table("device_commands")
                .select("result, acked_at")
                .eq("device_id", device_id)
                .eq("type", CommandType.GET_PENDING.value)
                .eq("status", CommandStatus.DONE.value)
                .not_.is_("result", "null")
                .order("acked_at", desc=True)
                .order("created_at", desc=True)
                .limit(1)
                .single()
                .execute()
            )
        except Exception as e:
            if is_no_rows(e):
                return []
            raise to_store_error(e) from e

        if not result.data:
            return []
        reported_at = parse_timestamp(result.data.get("acked_at")) or datetime.now(timezone.utc)
        return [
            PendingUID(uid=uid, reported_at=reported_at)
            for uid in parse_pending_result(result.data.get("result"))
        ]

    # ── Access logs ──────────────────────────────────────

    def access_logs(self, device_id: str, limit: int = 100) -> list[AccessLog]:
        try:
            result = (
                self.db.table("access_logs")
                .select("*")
                .eq("device_id", device_id)
                .order("logged_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            if is_undefined_table(e):
                return []
            raise to_store_error(e) from e
        return [AccessLog.model_validate(row) for row in result.data]

    # ── Dashboard batch ──────────────────────────────────

    async def dashboard(
        self,
        device_id: str,
        command_limit: int = 50,
        log_limit: int = 100,
    ) -> DeviceDashboard:
        """Fetch every projection of the device page concurrently."""
        commands = CommandService(self.db)
        (
            (detail, health),
            pending,
            whitelist,
            blacklist,
            history,
            logs,
            names,
        ) = await asyncio.gather(
            asyncio.to_thread(self._detail_with_health, device_id),
            asyncio.to_thread(self.pending_uids, device_id),
            asyncio.to_thread(self.whitelist, device_id),
            asyncio.to_thread(self.blacklist, device_id),
            asyncio.to_thread(commands.command_history, device_id, command_limit),
            asyncio.to_thread(self.access_logs, device_id, log_limit),
            asyncio.to_thread(self.uid_names, device_id),
        )
        return DeviceDashboard(
            device_id=device_id,
            detail=detail,
            pending=pending,
            whitelist=whitelist,
            blacklist=blacklist,
            commands=history,
            logs=logs,
            uid_names=names,
            health=health,
        )
