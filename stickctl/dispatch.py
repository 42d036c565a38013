"""
Command dispatch scheduling.

Two ways of feeding flight commands to an actuation channel at a fixed cadence:

- ``dispatch_plan``: a finite, precomputed sequence. Sends are fired without
  waiting for acknowledgment and the scheduler sleeps one interval after each
  one. The sleep is not shortened to account for send latency.
- ``VelocityStream``: a repeating send of a mutable live command. Each tick
  waits for the previous send to complete, so at most one command is ever in
  flight.

A failed send is logged and counted; it never stops the plan or the stream.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .actuation import ActuationChannel
from .exceptions import StickctlError
from .logging import LogComponent, get_logger, log_timing
from .types import FlightCommand, VelocityCommand

logger = get_logger(LogComponent.DISPATCH)


@dataclass
class DispatchReport:
    """Summary of one plan dispatch."""
    sent: int
    failed: int
    elapsed: float

    @property
    def total(self) -> int:
        return self.sent + self.failed


async def _send_and_record(
    channel: ActuationChannel, command: FlightCommand, index: int, report: DispatchReport
) -> None:
    try:
        await channel.send_command(command)
        report.sent += 1
    except StickctlError as e:
        report.failed += 1
        logger.warning(f"Flight command {index} failed: {e.message}")


@log_timing(logger=logger)
async def dispatch_plan(
    channel: ActuationChannel,
    commands: Sequence[FlightCommand],
    interval: float,
) -> DispatchReport:
    """
    Send ``commands`` in order, one every ``interval`` seconds.

    Each send is started as its own task and not awaited before the next
    interval begins. Before returning, all outstanding sends are awaited so the
    caller can safely release the vehicle.

    Args:
        channel: Channel to send through
        commands: Commands in dispatch order
        interval: Delay after each send, in seconds

    Returns:
        DispatchReport with counts of acknowledged and failed sends
    """
    report = DispatchReport(sent=0, failed=0, elapsed=0.0)
    pending: List[asyncio.Task] = []
    start = time.monotonic()

    try:
        for index, command in enumerate(commands):
            pending.append(asyncio.create_task(_send_and_record(channel, command, index, report)))
            await asyncio.sleep(interval)
    finally:
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    report.elapsed = time.monotonic() - start
    if report.failed:
        logger.warning(f"Plan finished with {report.failed}/{report.total} failed commands")
    else:
        logger.debug(f"Plan finished: {report.sent} commands in {report.elapsed:.2f}s")
    return report


class VelocityStream:
    """
    Repeatedly sends the current velocity command until stopped.

    Each iteration sleeps one interval, checks the active flag, sends the
    current command and waits for the acknowledgment. Updating the command
    takes effect on the next tick without restarting the loop.
    """

    def __init__(
        self,
        channel: ActuationChannel,
        interval: float,
        command: Optional[VelocityCommand] = None,
    ):
        self._channel = channel
        self._interval = interval
        self._command = command or VelocityCommand()
        self._active = False
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0
        self.failures = 0

    @property
    def active(self) -> bool:
        return self._active

    @property
    def command(self) -> VelocityCommand:
        return self._command

    def update(self, command: VelocityCommand) -> None:
        """Replace the command sent on the following ticks."""
        self._command = command

    def start(self) -> None:
        if self._active:
            return
        self._active = True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Velocity stream started ({1 / self._interval:.0f} Hz)")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if not self._active:
                break
            command = self._command.to_flight_command()
            try:
                await self._channel.send_command(command)
            except StickctlError as e:
                self.failures += 1
                logger.warning(f"Velocity command failed: {e.message}")
            self.ticks += 1

    async def stop(self) -> None:
        """
        Stop the stream and wait for the loop to exit.

        A send already in flight is allowed to complete; no further send starts.
        """
        if self._task is None:
            return
        self._active = False
        task, self._task = self._task, None
        await task
        logger.info(f"Velocity stream stopped after {self.ticks} ticks ({self.failures} failed)")


__all__ = ["DispatchReport", "dispatch_plan", "VelocityStream"]
