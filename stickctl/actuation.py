"""
Actuation channel: the boundary between stickctl and the vehicle.

``ActuationChannel`` is the protocol the controller talks to. The MAVSDK
implementation maps virtual-stick mode onto PX4 offboard control and each
flight command onto a body-frame velocity setpoint. ``stickctl.testing``
provides a mock with the same interface.
"""
from __future__ import annotations

import asyncio
import math
import time
from typing import List, Optional, Protocol, runtime_checkable

from mavsdk import System
from mavsdk.action import ActionError
from mavsdk.offboard import OffboardError, VelocityBodyYawspeed

from .constants import DEFAULT_CONNECTION_TIMEOUT, DEFAULT_MAVSDK_PORT
from .exceptions import (
    ActuationCommandError,
    ActuationModeError,
    AxisConfigError,
    ConnectionTimeoutError,
    LandingError,
    RebootError,
    TakeoffError,
    UnavailableError,
)
from .logging import LogComponent, get_logger
from .types import (
    AxisControlConfig,
    FlightCommand,
    ImuState,
    RollPitchControlMode,
    VerticalControlMode,
    YawControlMode,
)

logger = get_logger(LogComponent.ACTUATION)

_POLLING_DELAY = 0.05  # s

# Axis configuration PX4 holds outside offboard control
HOLD_AXIS_CONFIG = AxisControlConfig(
    VerticalControlMode.POSITION,
    YawControlMode.ANGLE,
    RollPitchControlMode.ANGLE,
)


@runtime_checkable
class ActuationChannel(Protocol):
    """
    Protocol for anything that can fly flight commands.

    Every coroutine raises an ``ActuationError`` subclass when the vehicle
    rejects the request, and ``UnavailableError`` when no vehicle is connected.
    """

    @property
    def connected(self) -> bool: ...

    @property
    def virtual_stick_enabled(self) -> bool: ...

    @property
    def heading(self) -> Optional[float]: ...

    @property
    def altitude(self) -> Optional[float]: ...

    def imu_state(self) -> Optional[ImuState]: ...

    async def send_command(self, command: FlightCommand) -> None: ...

    async def get_axis_config(self) -> AxisControlConfig: ...

    async def set_axis_config(self, config: AxisControlConfig) -> None: ...

    async def set_virtual_stick(self, enabled: bool) -> None: ...

    async def takeoff(self) -> None: ...

    async def land(self) -> None: ...

    async def reboot(self) -> None: ...

    async def close(self) -> None: ...


class MavsdkActuationChannel:
    """
    ActuationChannel backed by a MAVSDK ``System``.

    Virtual-stick mode is PX4 offboard mode. The axis configuration is kept on
    this side of the link: offboard velocity setpoints are only accepted while
    it is the velocity configuration, which mirrors how the flight controller
    would interpret stick input.

    Example:
        channel = await MavsdkActuationChannel.connect("udpin://0.0.0.0:14540")
        await channel.set_axis_config(VIRTUAL_STICK_AXIS_CONFIG)
        await channel.set_virtual_stick(True)
        await channel.send_command(FlightCommand(longitudinal=0.5))
    """

    def __init__(self, system: System, address: str):
        self._system = system
        self._address = address
        self._connected = False
        self._virtual_stick = False
        self._axis_config = HOLD_AXIS_CONFIG

        self._heading: Optional[float] = None
        self._altitude: Optional[float] = None
        self._velocity_ned: Optional[tuple] = None
        self._attitude: Optional[tuple] = None
        self._last_telemetry: Optional[float] = None
        self._telemetry_tasks: List[asyncio.Task] = []

    @classmethod
    async def connect(
        cls,
        address: str,
        mavsdk_port: int = DEFAULT_MAVSDK_PORT,
        timeout: float = DEFAULT_CONNECTION_TIMEOUT,
    ) -> "MavsdkActuationChannel":
        """
        Connect to a vehicle and start telemetry.

        Raises:
            UnavailableError: CONNECTION_TIMEOUT if no heartbeat arrives in time.
        """
        logger.info(f"Connecting to {address} (mavsdk_server port {mavsdk_port})...")
        system = System(port=mavsdk_port)
        await system.connect(system_address=address)

        channel = cls(system, address)
        try:
            await asyncio.wait_for(channel._wait_for_connection(), timeout)
        except asyncio.TimeoutError:
            raise ConnectionTimeoutError(timeout=timeout, address=address) from None

        channel._start_telemetry()
        logger.info("Connected to vehicle")
        return channel

    async def _wait_for_connection(self) -> None:
        async for conn_state in self._system.core.connection_state():
            if conn_state.is_connected:
                self._connected = True
                return
            await asyncio.sleep(_POLLING_DELAY)

    def _start_telemetry(self) -> None:
        telemetry_handlers = [
            (self._system.telemetry.position, self._handle_position),
            (self._system.telemetry.heading, self._handle_heading),
            (self._system.telemetry.attitude_euler, self._handle_attitude),
            (self._system.telemetry.velocity_ned, self._handle_velocity),
        ]

        async def create_subscription(stream_getter, handler):
            async for data in stream_getter():
                self._last_telemetry = time.time()
                handler(data)

        for stream_getter, handler in telemetry_handlers:
            task = asyncio.create_task(create_subscription(stream_getter, handler))
            self._telemetry_tasks.append(task)

    def _handle_position(self, p) -> None:
        self._altitude = p.relative_altitude_m

    def _handle_heading(self, h) -> None:
        self._heading = h.heading_deg % 360

    def _handle_attitude(self, a) -> None:
        self._attitude = (a.roll_deg, a.pitch_deg, a.yaw_deg)

    def _handle_velocity(self, v) -> None:
        self._velocity_ned = (v.north_m_s, v.east_m_s, v.down_m_s)

    def _require_connected(self) -> None:
        if not self._connected:
            raise UnavailableError(address=self._address)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def virtual_stick_enabled(self) -> bool:
        return self._virtual_stick

    @property
    def heading(self) -> Optional[float]:
        return self._heading

    @property
    def altitude(self) -> Optional[float]:
        return self._altitude

    def imu_state(self) -> Optional[ImuState]:
        if self._velocity_ned is None or self._attitude is None:
            return None
        vn, ve, vd = self._velocity_ned
        roll, pitch, yaw = self._attitude
        return ImuState(vn, ve, vd, roll, pitch, yaw)

    async def get_axis_config(self) -> AxisControlConfig:
        return self._axis_config

    async def set_axis_config(self, config: AxisControlConfig) -> None:
        self._require_connected()
        if self._virtual_stick and not config.is_velocity_config:
            # offboard only carries body velocity setpoints
            raise AxisConfigError(f"{config} is not usable while offboard is active")
        logger.debug(f"Axis control configuration: {self._axis_config} -> {config}")
        self._axis_config = config

    async def set_virtual_stick(self, enabled: bool) -> None:
        self._require_connected()
        try:
            if enabled:
                # PX4 refuses to enter offboard without a setpoint already streaming
                await self._system.offboard.set_velocity_body(
                    VelocityBodyYawspeed(0.0, 0.0, 0.0, 0.0)
                )
                await self._system.offboard.start()
            else:
                await self._system.offboard.stop()
        except OffboardError as e:
            raise ActuationModeError(enabled, reason=str(e)) from e
        self._virtual_stick = enabled
        logger.info(f"Virtual stick {'enabled' if enabled else 'disabled'}")

    async def send_command(self, command: FlightCommand) -> None:
        self._require_connected()
        if not self._virtual_stick:
            raise ActuationCommandError("Virtual stick mode is not enabled")
        if not self._axis_config.is_velocity_config:
            raise ActuationCommandError(
                "Axis control configuration does not accept velocity commands",
                axis_config=str(self._axis_config),
            )
        if not all(math.isfinite(v) for v in command.as_tuple()):
            raise ActuationCommandError("Flight command contains non-finite values")

        try:
            await self._system.offboard.set_velocity_body(
                VelocityBodyYawspeed(
                    command.longitudinal,
                    command.lateral,
                    -command.vertical,
                    command.yaw_rate,
                )
            )
        except OffboardError as e:
            raise ActuationCommandError(f"Failed to send flight command: {e}", reason=str(e)) from e

    async def takeoff(self) -> None:
        self._require_connected()
        try:
            await self._system.action.arm()
            await self._system.action.takeoff()
        except ActionError as e:
            raise TakeoffError(f"Takeoff failed: {e}", reason=str(e)) from e

    async def land(self) -> None:
        self._require_connected()
        try:
            await self._system.action.land()
        except ActionError as e:
            raise LandingError(f"Landing failed: {e}", reason=str(e)) from e

    async def reboot(self) -> None:
        self._require_connected()
        try:
            await self._system.action.reboot()
        except ActionError as e:
            raise RebootError(f"Reboot failed: {e}", reason=str(e)) from e
        self._connected = False
        self._virtual_stick = False

    async def close(self) -> None:
        for task in self._telemetry_tasks:
            task.cancel()
        await asyncio.gather(*self._telemetry_tasks, return_exceptions=True)
        self._telemetry_tasks.clear()
        self._connected = False
        logger.info("Vehicle channel closed")


__all__ = ["ActuationChannel", "MavsdkActuationChannel", "HOLD_AXIS_CONFIG"]
