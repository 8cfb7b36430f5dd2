"""
Commands feature: Service layer for the device_commands table.

Commands are appended here with status PENDING and acknowledged later by the
firmware, which is the only writer allowed to move a row to DONE/FAILED.
"""

import logging
from typing import Any

from pydantic import ValidationError
from supabase import Client

from lockadmin.core.exceptions import InvalidCommandError
from lockadmin.core.store_errors import is_duplicate_key, is_no_rows, to_store_error
from lockadmin.features.commands.schemas import (
    Command,
    CommandStatus,
    CommandType,
    SyncUidsRequest,
    command_request_adapter,
)

logger = logging.getLogger(__name__)


class CommandService:
    """Typed inserts/selects against `devices` and `device_commands`."""

    def __init__(self, db: Client):
        self.db = db

    # ── Devices ──────────────────────────────────────────

    def ensure_device_exists(self, device_id: str) -> None:
        """Insert the device row; an existing row is not an error.

        device_commands.device_id references devices.device_id, so this must
        run before every command insert.
        """
        try:
            self.db.table("devices").insert({"device_id": device_id}).execute()
            logger.info(f"Registered new device {device_id}")
        except Exception as e:
            if is_duplicate_key(e):
                return
            raise to_store_error(e) from e

    # ── Commands ─────────────────────────────────────────

    def send_command(
        self,
        device_id: str,
        type: CommandType | str,
        uid: str | None = None,
        payload: dict | None = None,
    ) -> Command:
        """Validate, normalize and insert a PENDING command.

        Returns the inserted row so the caller can poll it by id.

        Raises:
            InvalidCommandError: uid/payload don't fit the command type.
            StoreError: the device upsert or the insert failed.
        """
        try:
            request_data: dict = {"type": CommandType(type).value}
        except ValueError as e:
            raise InvalidCommandError(f"Unknown command type: {type}") from e
        if uid is not None:
            request_data["uid"] = uid
        if payload is not None:
            request_data.update(payload)

        return self.submit(device_id, request_data)

    def submit(self, device_id: str, data: Any) -> Command:
        """Validate a raw request body against the tagged union and insert it.

        Raises:
            InvalidCommandError: the body is not a well-formed command.
            StoreError: the device upsert or the insert failed.
        """
        try:
            request = command_request_adapter.validate_python(data)
        except ValidationError as e:
            kind = data.get("type", "unknown") if isinstance(data, dict) else "unknown"
            raise InvalidCommandError(f"Invalid {kind} command: {e.errors()[0]['msg']}") from e

        return self._insert(device_id, request)

    def _insert(self, device_id: str, request) -> Command:
        self.ensure_device_exists(device_id)

        insert_data = {
            "device_id": device_id,
            "type": request.type,
            "status": CommandStatus.PENDING.value,
        }
        uid = getattr(request, "uid", None)
        if uid:
            insert_data["uid"] = uid
        if isinstance(request, SyncUidsRequest):
            insert_data["payload"] = request.payload()

        try:
            result = self.db.table("device_commands").insert(insert_data).execute()
        except Exception as e:
            logger.error(f"Failed to insert {request.type} for {device_id}: {e}")
            raise to_store_error(e) from e

        command = Command.model_validate(result.data[0])
        logger.info(f"📨 {command.type.value} queued for {device_id} (id={command.id})")
        return command

    def send_remote_unlock(self, device_id: str) -> Command:
        return self.send_command(device_id, CommandType.REMOTE_UNLOCK)

    def send_whitelist_add(self, device_id: str, uid: str) -> Command:
        return self.send_command(device_id, CommandType.WHITELIST_ADD, uid)

    def send_blacklist_add(self, device_id: str, uid: str) -> Command:
        return self.send_command(device_id, CommandType.BLACKLIST_ADD, uid)

    def send_remove_uid(self, device_id: str, uid: str) -> Command:
        return self.send_command(device_id, CommandType.REMOVE_UID, uid)

    def send_sync_uids(self, device_id: str, whitelist: list[str], blacklist: list[str]) -> Command:
        return self.send_command(
            device_id,
            CommandType.SYNC_UIDS,
            payload={"whitelist": whitelist, "blacklist": blacklist},
        )

    def send_get_pending(self, device_id: str) -> Command:
        return self.send_command(device_id, CommandType.GET_PENDING)

    def send_sync_logs(self, device_id: str) -> Command:
        return self.send_command(device_id, CommandType.SYNC_LOGS)

    def get_command(self, command_id: str) -> Command | None:
        """Fetch one command by id, or None when it doesn't exist."""
        try:
            result = (
                self.db.table("device_commands")
                .select("*")
                .eq("id", command_id)
                .single()
                .execute()
            )
        except Exception as e:
            if is_no_rows(e):
                return None
            raise to_store_error(e) from e
        return Command.model_validate(result.data) if result.data else None

    def command_history(self, device_id: str, limit: int = 50) -> list[Command]:
        """Commands for a device, newest first."""
        try:
            result = (
                self.db.table("device_commands")
                .select("*")
                .eq("device_id", device_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise to_store_error(e) from e
        return [Command.model_validate(row) for row in result.data]
