"""
Periodic dashboard refresh.

Re-reads a device's dashboard snapshot on a fixed interval with APScheduler.
The job runs with max_instances=1 and coalesce=True: when a refresh is still
in flight at the next tick, that tick is dropped instead of stacking another
request behind it.
"""

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from lockadmin.client.api_client import LockAdminClient
from lockadmin.features.commands.schemas import CommandStatus
from lockadmin.features.devices.schemas import DeviceDashboard

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_SECONDS = 5

RefreshCallback = Callable[[DeviceDashboard], Any]


class DashboardWatcher:
    """Keeps a fresh DeviceDashboard for one device."""

    def __init__(
        self,
        client: LockAdminClient,
        device_id: str,
        on_refresh: RefreshCallback | None = None,
        interval_seconds: float = DEFAULT_REFRESH_SECONDS,
        scheduler: AsyncIOScheduler | None = None,
    ):
        self.client = client
        self.device_id = device_id
        self.on_refresh = on_refresh
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._owns_scheduler = scheduler is None
        self.snapshot: DeviceDashboard | None = None
        self._statuses: dict[str, CommandStatus] = {}

    @property
    def job_id(self) -> str:
        return f"dashboard_refresh:{self.device_id}"

    def _track_statuses(self, snapshot: DeviceDashboard) -> None:
        """Log command status changes between two snapshots.

        Only ids present in the latest snapshot are remembered.
        """
        seen: dict[str, CommandStatus] = {}
        for command in snapshot.commands:
            previous = self._statuses.get(command.id)
            if previous is not None and previous is not command.status:
                if previous.can_transition_to(command.status):
                    logger.info(f"Command {command.id} {previous.value} → {command.status.value}")
                else:
                    logger.warning(
                        f"Command {command.id} went {previous.value} → {command.status.value}; "
                        "terminal statuses should never change"
                    )
            seen[command.id] = command.status
        self._statuses = seen

    async def refresh(self) -> DeviceDashboard | None:
        """Fetch one snapshot; failures are logged and the schedule keeps going."""
        try:
            snapshot = await self.client.dashboard(self.device_id)
        except Exception as e:
            logger.error(f"Dashboard refresh for {self.device_id} failed: {e}")
            return None

        self._track_statuses(snapshot)
        self.snapshot = snapshot

        if self.on_refresh is not None:
            maybe_awaitable = self.on_refresh(snapshot)
            if inspect.isawaitable(maybe_awaitable):
                await maybe_awaitable
        return snapshot

    def start(self) -> None:
        """Register the refresh job (first run immediately). Needs a running loop."""
        self.scheduler.add_job(
            self.refresh,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"🔄 Watching {self.device_id} every {self.interval_seconds}s")

    async def stop(self) -> None:
        """Remove the job; an owned scheduler is shut down before this returns."""
        if self.scheduler.get_job(self.job_id) is not None:
            self.scheduler.remove_job(self.job_id)
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            # AsyncIOScheduler queues the shutdown on the loop
            await asyncio.sleep(0)
