"""
Motion controller: the single owner of control state.

``MotionController`` holds the control mode, the motion limits, the selected
velocity profile, the active velocity stream and the motion lock. All requests
from the HTTP layer go through it.

Control modes:
    POSITION: directional moves are accepted, velocity requests are rejected.
    VELOCITY: velocity stream requests are accepted, directional moves are
        rejected. The mode cannot change while a stream is active.

Only one motion (a directional move or a velocity stream) may hold the vehicle
at a time. A second request fails immediately with ``MotionBusyError``.
"""
from __future__ import annotations

import asyncio
from typing import List, Optional, Union

from .actuation import ActuationChannel
from .config import ServerConfig
from .dispatch import DispatchReport, VelocityStream, dispatch_plan
from .exceptions import (
    ModeMismatchError,
    ModeTransitionError,
    MotionBusyError,
    StickctlError,
    UnavailableError,
    VelocityStreamInactiveError,
)
from .logging import LogComponent, get_logger, log_call
from .profiles import generate_commands
from .session import VirtualStickSession
from .telemetry import ImuRecorder
from .types import (
    ControlMode,
    Direction,
    FlightCommand,
    ImuState,
    LimitKind,
    MotionLimits,
    VelocityCommand,
    VelocityProfileKind,
)
from .validation import parse_float, require_positive

logger = get_logger(LogComponent.CONTROLLER)


class MotionController:
    """
    Coordinates control mode, planning, dispatch and the virtual-stick session.

    Args:
        channel: Actuation channel, or None when no vehicle is connected.
            Every request that needs the vehicle then raises UnavailableError.
        config: Server configuration supplying the dispatch interval, the
            default profile and the initial limits.

    Example:
        controller = MotionController(channel, ServerConfig())
        controller.set_profile_kind(VelocityProfileKind.TRAPEZOIDAL)
        await controller.start_directional_move(Direction.FORWARD, 2.0)
    """

    def __init__(
        self,
        channel: Optional[ActuationChannel] = None,
        config: Optional[ServerConfig] = None,
    ):
        self._config = config or ServerConfig()
        self._channel = channel
        self._mode = ControlMode.POSITION
        self._limits = self._config.limits
        self._profile_kind = self._config.default_profile
        self._dispatch_interval = self._config.dispatch_interval

        self._motion_lock = asyncio.Lock()
        self._stream: Optional[VelocityStream] = None
        self._stream_session: Optional[VirtualStickSession] = None
        self._stream_starting = False
        self._imu = (
            ImuRecorder(channel, self._config.imu_max_samples) if channel is not None else None
        )

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def channel(self) -> Optional[ActuationChannel]:
        return self._channel

    @property
    def mode(self) -> ControlMode:
        return self._mode

    @property
    def limits(self) -> MotionLimits:
        return self._limits

    @property
    def profile_kind(self) -> VelocityProfileKind:
        return self._profile_kind

    @property
    def dispatch_interval(self) -> float:
        """Seconds between dispatched commands."""
        return self._dispatch_interval

    @property
    def streaming(self) -> bool:
        return self._stream is not None

    @property
    def busy(self) -> bool:
        return self._motion_lock.locked()

    @property
    def virtual_stick_enabled(self) -> bool:
        return self._require_channel().virtual_stick_enabled

    def get_limit(self, kind: Union[LimitKind, str]) -> float:
        if isinstance(kind, str):
            kind = LimitKind.from_string(kind)
        return self._limits.get(kind)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_channel(self) -> ActuationChannel:
        if self._channel is None or not self._channel.connected:
            raise UnavailableError()
        return self._channel

    def _require_mode(self, required: ControlMode) -> None:
        if self._mode is not required:
            raise ModeMismatchError(required.name, self._mode.name)

    async def _claim_motion(self) -> None:
        if self._motion_lock.locked():
            raise MotionBusyError(self._mode.name)
        await self._motion_lock.acquire()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_limit(self, kind: Union[LimitKind, str], value) -> MotionLimits:
        """
        Replace one motion limit.

        Moves already executing keep the limits they were planned with.

        Raises:
            ValidationError: If the value is not a finite positive number.
        """
        if isinstance(kind, str):
            kind = LimitKind.from_string(kind)
        number = parse_float(value, kind.field_name, message=f"{kind.value} must be a positive float")
        self._limits = self._limits.with_limit(kind, number)
        logger.info(f"{kind.value} limit set to {number}")
        return self._limits

    def set_profile_kind(self, kind: Union[VelocityProfileKind, str]) -> None:
        if isinstance(kind, str):
            kind = VelocityProfileKind.from_string(kind)
        self._profile_kind = kind
        logger.info(f"Velocity profile set to {kind.name}")

    def set_mode(self, target: Union[ControlMode, str]) -> None:
        """
        Switch control mode.

        Raises:
            ModeTransitionError: If a velocity stream is active or starting.
            ValidationError: If ``target`` is not a known mode name.
        """
        if self.streaming or self._stream_starting:
            raise ModeTransitionError(
                target.name if isinstance(target, ControlMode) else str(target),
                self._mode.name,
            )
        if isinstance(target, str):
            target = ControlMode.from_string(target)
        if target is not self._mode:
            logger.info(f"Control mode {self._mode.name} -> {target.name}")
        self._mode = target

    # ------------------------------------------------------------------
    # Position mode
    # ------------------------------------------------------------------

    def plan_move(self, direction: Direction, magnitude) -> List[FlightCommand]:
        """
        Compute the command sequence for a move without flying it.

        Uses the current profile kind and a snapshot of the current limits.
        """
        magnitude = require_positive(magnitude, "magnitude")
        return generate_commands(
            self._profile_kind, magnitude, direction, self._limits, self._dispatch_interval
        )

    @log_call(logger=logger)
    async def start_directional_move(self, direction: Direction, magnitude) -> DispatchReport:
        """
        Fly a bounded move along ``direction`` and return when it has finished.

        Validation and mode errors are raised before anything is sent to the
        vehicle. The prior axis configuration is restored on every exit path.

        Raises:
            ModeMismatchError: If the controller is in VELOCITY mode.
            ValidationError: If ``magnitude`` is not a positive number.
            ControlStateError: MOTION_BUSY if another motion holds the vehicle.
            ActuationModeError: If virtual-stick mode cannot be entered or left.
            UnavailableError: If no vehicle is connected.
        """
        self._require_mode(ControlMode.POSITION)
        commands = self.plan_move(direction, magnitude)
        channel = self._require_channel()

        await self._claim_motion()
        try:
            logger.info(
                f"Moving {direction.name} {magnitude} with {self._profile_kind.name} profile "
                f"({len(commands)} commands)"
            )
            async with VirtualStickSession(channel):
                report = await dispatch_plan(channel, commands, self._dispatch_interval)
        finally:
            self._motion_lock.release()
        return report

    # ------------------------------------------------------------------
    # Velocity mode
    # ------------------------------------------------------------------

    async def start_velocity_stream(self) -> None:
        """
        Take virtual-stick control and start streaming the live velocity command.

        The command starts at zero. Starting an already running stream is a no-op.

        Raises:
            ModeMismatchError: If the controller is in POSITION mode.
            ControlStateError: MOTION_BUSY if a directional move holds the vehicle.
            ActuationModeError: If virtual-stick mode cannot be entered.
        """
        self._require_mode(ControlMode.VELOCITY)
        channel = self._require_channel()
        if self._stream is not None:
            return

        await self._claim_motion()
        session = VirtualStickSession(channel)
        # set_mode refuses while the session is being acquired
        self._stream_starting = True
        try:
            await session.acquire()
        except StickctlError:
            self._motion_lock.release()
            raise
        finally:
            self._stream_starting = False

        stream = VelocityStream(channel, self._dispatch_interval)
        stream.start()
        self._stream, self._stream_session = stream, session

    def update_velocity_command(self, x, y, z, yaw_rate) -> VelocityCommand:
        """
        Replace the live velocity command; visible to the next tick and to queries.

        Raises:
            ModeMismatchError: If the controller is in POSITION mode.
            ControlStateError: STREAM_NOT_ACTIVE if no stream is running.
            ValidationError: If any component is not a finite number.
        """
        self._require_mode(ControlMode.VELOCITY)
        if self._stream is None:
            raise VelocityStreamInactiveError()
        message = "Velocities must be valid floats."
        command = VelocityCommand(
            parse_float(x, "x", message=message),
            parse_float(y, "y", message=message),
            parse_float(z, "z", message=message),
            parse_float(yaw_rate, "yaw_rate", message=message),
        )
        self._stream.update(command)
        logger.debug(f"Velocity command updated: {command}")
        return command

    def query_velocity_command(self) -> VelocityCommand:
        """Return the live velocity command (zero when no stream is running)."""
        self._require_mode(ControlMode.VELOCITY)
        if self._stream is None:
            return VelocityCommand()
        return self._stream.command

    async def stop_velocity_stream(self) -> None:
        """
        Stop the stream, release virtual-stick control and reset the command.

        Stopping when no stream is running succeeds without doing anything.

        Raises:
            ModeMismatchError: If the controller is in POSITION mode.
            ActuationModeError: If virtual-stick mode cannot be left. The
                stream is stopped and the axis configuration restored anyway.
        """
        self._require_mode(ControlMode.VELOCITY)
        stream, session = self._stream, self._stream_session
        if stream is None:
            return

        self._stream, self._stream_session = None, None
        try:
            try:
                await stream.stop()
            finally:
                if session is not None:
                    await session.release()
        finally:
            self._motion_lock.release()
        logger.info("Velocity control stopped")

    # ------------------------------------------------------------------
    # Flight actions and vehicle state
    # ------------------------------------------------------------------

    @log_call(logger=logger)
    async def takeoff(self) -> None:
        await self._require_channel().takeoff()

    @log_call(logger=logger)
    async def land(self) -> None:
        await self._require_channel().land()

    @log_call(logger=logger)
    async def reboot(self) -> None:
        await self._require_channel().reboot()

    def heading(self) -> Optional[float]:
        return self._require_channel().heading

    def altitude(self) -> Optional[float]:
        return self._require_channel().altitude

    def imu_state(self) -> Optional[ImuState]:
        return self._require_channel().imu_state()

    # ------------------------------------------------------------------
    # IMU sampling
    # ------------------------------------------------------------------

    @property
    def imu_recorder(self) -> ImuRecorder:
        self._require_channel()
        return self._imu

    async def start_imu_sampling(self, interval_ms) -> None:
        await self.imu_recorder.start(interval_ms)

    async def stop_imu_sampling(self) -> int:
        return await self.imu_recorder.stop()

    def imu_samples(self) -> List[Optional[ImuState]]:
        return self._imu.samples if self._imu is not None else []

    def clear_imu_samples(self) -> None:
        if self._imu is not None:
            self._imu.clear()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Stop any active stream and IMU sampling, then close the channel."""
        if self._stream is not None:
            logger.warning("Shutting down with an active velocity stream, stopping it")
            stream, session = self._stream, self._stream_session
            self._stream, self._stream_session = None, None
            try:
                await stream.stop()
                if session is not None:
                    await session.release(body_failed=True)
            finally:
                self._motion_lock.release()
        if self._imu is not None:
            await self._imu.stop()
        if self._channel is not None:
            await self._channel.close()


__all__ = ["MotionController"]
