"""
Commands feature: waiting for a command to be acknowledged.

A command row is a single-assignment future: it is created PENDING and the
firmware sets DONE or FAILED exactly once. `wait_for_command` polls the row
by id until it reaches a terminal state or the timeout runs out.

Transport/store errors while checking are logged and polling continues;
"could not check the status" is never reported as "the command failed".
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from lockadmin.features.commands.schemas import Command, CommandStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_POLL_TIMEOUT = 30.0
DEFAULT_FAILURE_MESSAGE = "Command failed"
TIMEOUT_MESSAGE = "Timed out waiting for device"

CommandFetcher = Callable[[str], Awaitable[Command | dict | None]]
CompletionCallback = Callable[[bool, str | None], Any]


class PollState(str, Enum):
    DONE = "DONE"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"


class PollOutcome(BaseModel):
    command_id: str
    state: PollState
    success: bool
    message: str | None = None
    command: Command | None = None
    attempts: int = 0


def _outcome_for(command: Command, attempts: int) -> PollOutcome:
    if command.status is CommandStatus.DONE:
        return PollOutcome(
            command_id=command.id,
            state=PollState.DONE,
            success=True,
            message=command.result,
            command=command,
            attempts=attempts,
        )
    return PollOutcome(
        command_id=command.id,
        state=PollState.FAILED,
        success=False,
        message=command.result or DEFAULT_FAILURE_MESSAGE,
        command=command,
        attempts=attempts,
    )


async def wait_for_command(
    fetch: CommandFetcher,
    command_id: str,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    timeout: float = DEFAULT_POLL_TIMEOUT,
    on_complete: CompletionCallback | None = None,
) -> PollOutcome:
    """Poll `fetch(command_id)` until DONE/FAILED or `timeout` seconds pass.

    Args:
        fetch: Async callable returning the command row (model or dict), or
            None when it can't be found.
        command_id: Primary key of the command to watch.
        interval: Seconds between polls.
        timeout: Give up after this many seconds and report TIMED_OUT. The
            row itself is left untouched.
        on_complete: Called once with (success, message) when polling ends.
            May be a coroutine function.

    Returns:
        PollOutcome describing the terminal state observed.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    attempts = 0

    while True:
        attempts += 1
        try:
            row = await fetch(command_id)
            command = Command.model_validate(row) if isinstance(row, dict) else row
        except Exception as e:
            logger.warning(f"Polling command {command_id} failed, retrying: {e}")
            command = None
        else:
            if command is None:
                logger.warning(f"Command {command_id} not found while polling")

        if command is not None and command.status.is_terminal:
            outcome = _outcome_for(command, attempts)
            break

        if loop.time() + interval > deadline:
            outcome = PollOutcome(
                command_id=command_id,
                state=PollState.TIMED_OUT,
                success=False,
                message=TIMEOUT_MESSAGE,
                attempts=attempts,
            )
            logger.warning(f"⏱️ Gave up on command {command_id} after {attempts} polls")
            break

        await asyncio.sleep(interval)

    if on_complete is not None:
        maybe_awaitable = on_complete(outcome.success, outcome.message)
        if inspect.isawaitable(maybe_awaitable):
            await maybe_awaitable

    return outcome
