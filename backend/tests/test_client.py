"""
Tests for the HTTP client and the periodic dashboard watcher.
"""

import asyncio
import logging

import httpx

from lockadmin.client.api_client import LockAdminClient
from lockadmin.client.watcher import DashboardWatcher


def _command(cid: str, status: str) -> dict:
    return {"id": cid, "device_id": "ESP32-1", "type": "REMOTE_UNLOCK", "status": status}


def _dashboard(*commands: dict) -> dict:
    return {"data": {"device_id": "ESP32-1", "commands": list(commands)}}


class SequencedTransport:
    """Serves the next dashboard body on each request."""

    def __init__(self, *bodies):
        self.bodies = list(bodies)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.bodies[min(len(self.requests) - 1, len(self.bodies) - 1)]
        if isinstance(body, int):
            return httpx.Response(body, json={"error": "boom"})
        return httpx.Response(200, json=body)


def _client(handler, token=None) -> LockAdminClient:
    return LockAdminClient("http://lock.local", token=token, transport=httpx.MockTransport(handler))


class TestLockAdminClient:
    def test_get_command_404_is_none(self):
        async def run():
            async with _client(lambda r: httpx.Response(404, json={"error": "Command not found"})) as api:
                return await api.get_command("x")

        assert asyncio.run(run()) is None

    def test_token_sent_as_bearer(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json={"success": True})

        async def run():
            async with _client(handler, token="s3cret") as api:
                return await api.unlock("XYZ")

        assert asyncio.run(run()) == {"success": True}
        assert seen["auth"] == "Bearer s3cret"

    def test_wait_for_command_survives_server_errors(self):
        responses = iter([
            httpx.Response(500, json={"error": "boom"}),
            httpx.Response(200, json=_command("c1", "PENDING")),
            httpx.Response(200, json=_command("c1", "DONE")),
        ])

        async def run():
            async with _client(lambda r: next(responses)) as api:
                return await api.wait_for_command("c1", interval=0.001, timeout=5)

        outcome = asyncio.run(run())
        assert outcome.success is True
        assert outcome.attempts == 3


class TestDashboardWatcher:
    def test_refresh_stores_snapshot_and_calls_back(self):
        transport = SequencedTransport(_dashboard(_command("c1", "PENDING")))
        received = []

        async def run():
            async with _client(transport) as api:
                watcher = DashboardWatcher(api, "ESP32-1", on_refresh=received.append)
                return await watcher.refresh(), watcher

        snapshot, watcher = asyncio.run(run())
        assert snapshot.commands[0].id == "c1"
        assert watcher.snapshot is snapshot
        assert received == [snapshot]
        assert transport.requests[0].url.path == "/api/devices/ESP32-1/dashboard"

    def test_failed_refresh_keeps_previous_snapshot(self):
        transport = SequencedTransport(_dashboard(), 500)

        async def run():
            async with _client(transport) as api:
                watcher = DashboardWatcher(api, "ESP32-1")
                first = await watcher.refresh()
                second = await watcher.refresh()
                return first, second, watcher

        first, second, watcher = asyncio.run(run())
        assert first is not None
        assert second is None
        assert watcher.snapshot is first

    def test_logs_status_changes_and_regressions(self, caplog):
        transport = SequencedTransport(
            _dashboard(_command("c1", "PENDING")),
            _dashboard(_command("c1", "DONE")),
            _dashboard(_command("c1", "PENDING")),
        )

        async def run():
            async with _client(transport) as api:
                watcher = DashboardWatcher(api, "ESP32-1")
                for _ in range(3):
                    await watcher.refresh()

        with caplog.at_level(logging.INFO, logger="lockadmin.client.watcher"):
            asyncio.run(run())

        messages = [r.getMessage() for r in caplog.records]
        assert any("PENDING → DONE" in m for m in messages)
        assert any("terminal statuses should never change" in m for m in messages)

    def test_start_registers_non_overlapping_job(self):
        async def run():
            async with _client(SequencedTransport(_dashboard())) as api:
                watcher = DashboardWatcher(api, "ESP32-1", interval_seconds=60)
                watcher.start()
                job = watcher.scheduler.get_job(watcher.job_id)
                info = (job.max_instances, job.coalesce)
                await watcher.stop()
                return info, watcher.scheduler.running

        (max_instances, coalesce), running = asyncio.run(run())
        assert max_instances == 1
        assert coalesce is True
        assert running is False

    def test_forgets_commands_that_left_the_snapshot(self):
        transport = SequencedTransport(
            _dashboard(_command("c1", "PENDING"), _command("c2", "PENDING")),
            _dashboard(_command("c2", "DONE")),
        )

        async def run():
            async with _client(transport) as api:
                watcher = DashboardWatcher(api, "ESP32-1")
                await watcher.refresh()
                first = set(watcher._statuses)
                await watcher.refresh()
                return first, watcher._statuses

        first, latest = asyncio.run(run())
        assert first == {"c1", "c2"}
        assert set(latest) == {"c2"}
        assert latest["c2"].value == "DONE"
