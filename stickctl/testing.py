"""
Mock actuation channel for testing stickctl without a vehicle.

``MockActuationChannel`` implements the ``ActuationChannel`` protocol, records
everything it is asked to do and can be told to fail. It also backs the
server's ``--dry-run`` mode.

Example:
    from stickctl.testing import MockActuationChannel

    async def test_forward():
        channel = MockActuationChannel()
        controller = MotionController(channel, ServerConfig(dispatch_interval_ms=1))
        await controller.start_directional_move(Direction.FORWARD, 0.01)

        assert channel.sent_commands[-1].is_zero
        assert channel.axis_config == HOLD_AXIS_CONFIG
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import List, Optional

from .actuation import HOLD_AXIS_CONFIG
from .exceptions import (
    ActuationCommandError,
    ActuationModeError,
    AxisConfigError,
    LandingError,
    RebootError,
    TakeoffError,
    UnavailableError,
)
from .logging import LogComponent, get_logger
from .types import AxisControlConfig, FlightCommand, ImuState

logger = get_logger(LogComponent.ACTUATION, channel="mock")


@dataclass
class SentCommand:
    """A flight command as the mock received it."""
    command: FlightCommand
    timestamp: float
    virtual_stick: bool
    axis_config: AxisControlConfig


class MockActuationChannel:
    """
    In-memory actuation channel.

    Failure injection flags:
    - fail_enable_virtual_stick / fail_disable_virtual_stick
    - fail_send: every send raises; fail_send_at: sends with these indices raise
    - fail_set_axis_config / fail_restore_axis_config (the latter only once
      virtual stick has been used, i.e. on restore)
    - fail_takeoff / fail_land / fail_reboot
    """

    def __init__(
        self,
        connected: bool = True,
        send_latency: float = 0.0,
        initial_axis_config: AxisControlConfig = HOLD_AXIS_CONFIG,
    ):
        self._connected = connected
        self._virtual_stick = False
        self.axis_config = initial_axis_config
        self.send_latency = send_latency

        self.sent: List[SentCommand] = []
        self.axis_config_history: List[AxisControlConfig] = []
        self.virtual_stick_history: List[bool] = []
        self.actions: List[str] = []

        self.heading_deg: Optional[float] = 0.0
        self.altitude_m: Optional[float] = 0.0
        self.imu: Optional[ImuState] = ImuState()

        # Failure injection for testing
        self.fail_enable_virtual_stick = False
        self.fail_disable_virtual_stick = False
        self.fail_send = False
        self.fail_send_at: set = set()
        self.fail_set_axis_config = False
        self.fail_restore_axis_config = False
        self.fail_takeoff = False
        self.fail_land = False
        self.fail_reboot = False

        self._send_attempts = 0
        self._in_flight = 0
        self.max_in_flight = 0

    def _require_connected(self) -> None:
        if not self._connected:
            raise UnavailableError()

    @property
    def connected(self) -> bool:
        return self._connected

    @connected.setter
    def connected(self, value: bool) -> None:
        self._connected = value

    @property
    def virtual_stick_enabled(self) -> bool:
        return self._virtual_stick

    @property
    def heading(self) -> Optional[float]:
        return self.heading_deg

    @property
    def altitude(self) -> Optional[float]:
        return self.altitude_m

    @property
    def sent_commands(self) -> List[FlightCommand]:
        return [s.command for s in self.sent]

    @property
    def send_attempts(self) -> int:
        return self._send_attempts

    def imu_state(self) -> Optional[ImuState]:
        return self.imu

    async def get_axis_config(self) -> AxisControlConfig:
        self._require_connected()
        return self.axis_config

    async def set_axis_config(self, config: AxisControlConfig) -> None:
        self._require_connected()
        if self.fail_set_axis_config:
            raise AxisConfigError("Simulated axis configuration failure")
        if self.fail_restore_axis_config and self.virtual_stick_history:
            raise AxisConfigError("Simulated axis configuration restore failure")
        self.axis_config = config
        self.axis_config_history.append(config)

    async def set_virtual_stick(self, enabled: bool) -> None:
        self._require_connected()
        await asyncio.sleep(0)
        if enabled and self.fail_enable_virtual_stick:
            raise ActuationModeError(True, reason="simulated")
        if not enabled and self.fail_disable_virtual_stick:
            raise ActuationModeError(False, reason="simulated")
        self._virtual_stick = enabled
        self.virtual_stick_history.append(enabled)

    async def send_command(self, command: FlightCommand) -> None:
        self._require_connected()
        index = self._send_attempts
        self._send_attempts += 1
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if self.send_latency:
                await asyncio.sleep(self.send_latency)
            if self.fail_send or index in self.fail_send_at:
                raise ActuationCommandError("Simulated send failure", index=index)
            if not self._virtual_stick:
                raise ActuationCommandError("Virtual stick mode is not enabled", index=index)
            self.sent.append(
                SentCommand(command, time.monotonic(), self._virtual_stick, self.axis_config)
            )
        finally:
            self._in_flight -= 1

    async def takeoff(self) -> None:
        self._require_connected()
        if self.fail_takeoff:
            raise TakeoffError("Simulated takeoff failure")
        await asyncio.sleep(0.01)
        self.altitude_m = 2.5
        self.actions.append("takeoff")

    async def land(self) -> None:
        self._require_connected()
        if self.fail_land:
            raise LandingError("Simulated landing failure")
        await asyncio.sleep(0.01)
        self.altitude_m = 0.0
        self.actions.append("land")

    async def reboot(self) -> None:
        self._require_connected()
        if self.fail_reboot:
            raise RebootError("Simulated reboot failure")
        self._virtual_stick = False
        self.actions.append("reboot")
        logger.info("Mock vehicle rebooted")

    async def close(self) -> None:
        self.actions.append("close")


__all__ = ["MockActuationChannel", "SentCommand"]
