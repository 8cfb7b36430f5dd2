"""
Commands feature: command types, status state machine and request models.

A command request is a tagged union keyed by `type`; each variant carries
exactly the arguments its command kind needs.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class CommandType(str, Enum):
    REMOTE_UNLOCK = "REMOTE_UNLOCK"
    WHITELIST_ADD = "WHITELIST_ADD"
    BLACKLIST_ADD = "BLACKLIST_ADD"
    REMOVE_UID = "REMOVE_UID"
    SYNC_UIDS = "SYNC_UIDS"
    GET_PENDING = "GET_PENDING"
    SYNC_LOGS = "SYNC_LOGS"


class CommandStatus(str, Enum):
    """PENDING → DONE | FAILED. Terminal states never change again."""

    PENDING = "PENDING"
    DONE = "DONE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not CommandStatus.PENDING

    def can_transition_to(self, other: "CommandStatus") -> bool:
        if self is CommandStatus.PENDING:
            return True
        return other is self


def normalize_uid(uid: str) -> str:
    """Firmware keys UIDs as uppercase hex; lowercase input is corrected."""
    return uid.strip().upper()


class Command(BaseModel):
    """A row of `device_commands`."""
    id: str
    device_id: str
    type: CommandType
    uid: str | None = None
    payload: dict[str, Any] | None = None
    status: CommandStatus
    result: str | None = None
    created_at: datetime | None = None
    acked_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v)


# ── Tagged request union ─────────────────────────────────

class _RequestBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class _UidRequest(_RequestBase):
    uid: str = Field(..., min_length=1, max_length=32)

    @field_validator("uid")
    @classmethod
    def _normalize(cls, v: str) -> str:
        v = normalize_uid(v)
        if not v:
            raise ValueError("uid must not be blank")
        return v


class SyncUidsPayload(_RequestBase):
    """Full replacement of the device's lists; both keys are required."""
    whitelist: list[str]
    blacklist: list[str]

    @field_validator("whitelist", "blacklist")
    @classmethod
    def _normalize_all(cls, v: list[str]) -> list[str]:
        return [normalize_uid(u) for u in v if u and u.strip()]


class RemoteUnlockRequest(_RequestBase):
    type: Literal["REMOTE_UNLOCK"]


class WhitelistAddRequest(_UidRequest):
    type: Literal["WHITELIST_ADD"]


class BlacklistAddRequest(_UidRequest):
    type: Literal["BLACKLIST_ADD"]


class RemoveUidRequest(_UidRequest):
    type: Literal["REMOVE_UID"]


class SyncUidsRequest(SyncUidsPayload):
    type: Literal["SYNC_UIDS"]

    def payload(self) -> dict:
        return {"whitelist": self.whitelist, "blacklist": self.blacklist}


class GetPendingRequest(_RequestBase):
    type: Literal["GET_PENDING"]


class SyncLogsRequest(_RequestBase):
    type: Literal["SYNC_LOGS"]


CommandRequest = Annotated[
    Union[
        RemoteUnlockRequest,
        WhitelistAddRequest,
        BlacklistAddRequest,
        RemoveUidRequest,
        SyncUidsRequest,
        GetPendingRequest,
        SyncLogsRequest,
    ],
    Field(discriminator="type"),
]

command_request_adapter = TypeAdapter(CommandRequest)


class UnlockRequest(BaseModel):
    """Body of POST /api/commands/unlock."""
    deviceId: str | None = None
