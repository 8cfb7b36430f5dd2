"""
HTTP client for the lock admin API.

Used by scripts and dashboards that talk to a running server instead of the
database: queue commands, read projections and wait for acknowledgements.
"""

import httpx

from lockadmin.features.commands.poller import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_TIMEOUT,
    CompletionCallback,
    PollOutcome,
    wait_for_command,
)
from lockadmin.features.commands.schemas import Command
from lockadmin.features.devices.schemas import DeviceDashboard, DeviceSummary


class LockAdminClient:
    """Async client over the /api routes."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "LockAdminClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Commands ─────────────────────────────────────────

    async def get_command(self, command_id: str) -> Command | None:
        """Current row of a command; None on 404."""
        response = await self._client.get(f"/api/commands/{command_id}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return Command.model_validate(response.json())

    async def send_command(self, device_id: str, request: dict) -> Command:
        """Queue a command; `request` is the tagged body, e.g. {"type": "GET_PENDING"}."""
        response = await self._client.post(f"/api/devices/{device_id}/commands", json=request)
        response.raise_for_status()
        return Command.model_validate(response.json()["data"])

    async def unlock(self, device_id: str) -> dict:
        """Quick unlock; returns the JSON acknowledgement."""
        response = await self._client.post(f"/api/unlock/{device_id}")
        response.raise_for_status()
        return response.json()

    async def wait_for_command(
        self,
        command_id: str,
        interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_POLL_TIMEOUT,
        on_complete: CompletionCallback | None = None,
    ) -> PollOutcome:
        return await wait_for_command(
            self.get_command,
            command_id,
            interval=interval,
            timeout=timeout,
            on_complete=on_complete,
        )

    # ── Devices ──────────────────────────────────────────

    async def list_devices(self) -> list[DeviceSummary]:
        response = await self._client.get("/api/devices")
        response.raise_for_status()
        return [DeviceSummary.model_validate(row) for row in response.json()["data"]]

    async def dashboard(self, device_id: str) -> DeviceDashboard:
        response = await self._client.get(f"/api/devices/{device_id}/dashboard")
        response.raise_for_status()
        return DeviceDashboard.model_validate(response.json()["data"])
