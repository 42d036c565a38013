"""
Core types for stickctl.

Value objects shared by the profile generator, the dispatch scheduler, the
session manager and the HTTP layer. Motion values use metres and degrees;
velocity commands are body-frame.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from .constants import (
    DEFAULT_MAX_ACCELERATION,
    DEFAULT_MAX_ANGULAR_ACCELERATION,
    DEFAULT_MAX_ANGULAR_JERK,
    DEFAULT_MAX_ANGULAR_SPEED,
    DEFAULT_MAX_JERK,
    DEFAULT_MAX_SPEED,
)
from .exceptions import InvalidChoiceError, InvalidLimitError

T = TypeVar("T")


class ControlMode(Enum):
    """Which family of motion requests the controller accepts."""

    POSITION = auto()
    VELOCITY = auto()

    @classmethod
    def from_string(cls, name: str) -> "ControlMode":
        """Parse a case-insensitive mode name."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise InvalidChoiceError(
                "mode", name, [m.name for m in cls], label="Control mode"
            ) from None


class VelocityProfileKind(Enum):
    """Shape of the velocity curve used for position moves."""

    CONSTANT = auto()
    TRAPEZOIDAL = auto()
    S_CURVE = auto()

    @classmethod
    def from_string(cls, name: str) -> "VelocityProfileKind":
        """Parse a case-insensitive profile name."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise InvalidChoiceError(
                "profile", name, [p.name for p in cls], label="Profile"
            ) from None


class ControlAxis(Enum):
    """Body-frame axis a flight command acts on."""

    LATERAL = auto()
    LONGITUDINAL = auto()
    VERTICAL = auto()
    YAW = auto()


class Direction(Enum):
    """
    Direction of a position move.

    Each member maps to one axis and a sign. Rotations are the only directions
    bounded by the angular limits.
    """

    FORWARD = (ControlAxis.LONGITUDINAL, 1)
    BACKWARD = (ControlAxis.LONGITUDINAL, -1)
    RIGHT = (ControlAxis.LATERAL, 1)
    LEFT = (ControlAxis.LATERAL, -1)
    UP = (ControlAxis.VERTICAL, 1)
    DOWN = (ControlAxis.VERTICAL, -1)
    CLOCKWISE = (ControlAxis.YAW, 1)
    COUNTER_CLOCKWISE = (ControlAxis.YAW, -1)

    @property
    def axis(self) -> ControlAxis:
        return self.value[0]

    @property
    def sign(self) -> int:
        return self.value[1]

    @property
    def is_angular(self) -> bool:
        return self.axis is ControlAxis.YAW


class LimitKind(Enum):
    """Names one field of MotionLimits. The value is the human-readable label."""

    SPEED = "Speed"
    ANGULAR_SPEED = "Angular speed"
    ACCELERATION = "Acceleration"
    ANGULAR_ACCELERATION = "Angular acceleration"
    JERK = "Jerk"
    ANGULAR_JERK = "Angular jerk"

    @property
    def field_name(self) -> str:
        return _LIMIT_FIELDS[self]

    @classmethod
    def from_string(cls, name: str) -> "LimitKind":
        """
        Parse a limit name.

        Accepts member names in any case (``angular_speed``) and the camel-case
        field names used on the wire (``maxAngularSpeed``).
        """
        key = name.strip()
        if key.lower().startswith("max"):
            key = key[3:]
        normalized = "".join(c for c in key.upper() if c.isalnum())
        for kind in cls:
            if kind.name.replace("_", "") == normalized:
                return kind
        raise InvalidChoiceError("limit", name, [k.name for k in cls], label="Limit")


_LIMIT_FIELDS = {
    LimitKind.SPEED: "max_speed",
    LimitKind.ANGULAR_SPEED: "max_angular_speed",
    LimitKind.ACCELERATION: "max_acceleration",
    LimitKind.ANGULAR_ACCELERATION: "max_angular_acceleration",
    LimitKind.JERK: "max_jerk",
    LimitKind.ANGULAR_JERK: "max_angular_jerk",
}


@dataclass(frozen=True)
class MotionLimits:
    """
    Kinematic limits applied when planning a position move.

    Immutable: use ``with_limit`` to get an updated copy, so a plan in progress
    always sees one consistent set of limits.
    """

    max_speed: float = DEFAULT_MAX_SPEED
    max_angular_speed: float = DEFAULT_MAX_ANGULAR_SPEED
    max_acceleration: float = DEFAULT_MAX_ACCELERATION
    max_angular_acceleration: float = DEFAULT_MAX_ANGULAR_ACCELERATION
    max_jerk: float = DEFAULT_MAX_JERK
    max_angular_jerk: float = DEFAULT_MAX_ANGULAR_JERK

    def get(self, kind: LimitKind) -> float:
        return getattr(self, kind.field_name)

    def with_limit(self, kind: LimitKind, value: float) -> "MotionLimits":
        """
        Return a copy with one limit replaced.

        Raises:
            ValidationError: If ``value`` is not a finite, strictly positive number.
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidLimitError(kind.value, value)
        if not math.isfinite(value) or value <= 0:
            raise InvalidLimitError(kind.value, value)
        return replace(self, **{kind.field_name: float(value)})

    def for_direction(self, direction: Direction) -> Tuple[float, float, float]:
        """Return the (speed, acceleration, jerk) triple that bounds ``direction``."""
        if direction.is_angular:
            return self.max_angular_speed, self.max_angular_acceleration, self.max_angular_jerk
        return self.max_speed, self.max_acceleration, self.max_jerk

    def validate(self) -> List[str]:
        """
        Validate the limits.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []
        for kind in LimitKind:
            value = self.get(kind)
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
                errors.append(f"{kind.field_name} must be a positive float, got {value!r}")
        return errors

    def to_dict(self) -> Dict[str, float]:
        return {
            "maxSpeed": self.max_speed,
            "maxAngularSpeed": self.max_angular_speed,
            "maxAcceleration": self.max_acceleration,
            "maxAngularAcceleration": self.max_angular_acceleration,
            "maxJerk": self.max_jerk,
            "maxAngularJerk": self.max_angular_jerk,
        }


@dataclass(frozen=True)
class FlightCommand:
    """
    One low-level velocity setpoint.

    Attributes:
        lateral: Rightward velocity in m/s
        longitudinal: Forward velocity in m/s
        yaw_rate: Clockwise yaw rate in deg/s
        vertical: Upward velocity in m/s
    """

    lateral: float = 0.0
    longitudinal: float = 0.0
    yaw_rate: float = 0.0
    vertical: float = 0.0

    @classmethod
    def along(cls, direction: Direction, speed: float) -> "FlightCommand":
        """
        Build a command moving at ``speed`` along ``direction``.

        Examples:
            >>> FlightCommand.along(Direction.BACKWARD, 0.5)
            FlightCommand(lateral=0.0, longitudinal=-0.5, yaw_rate=0.0, vertical=0.0)
        """
        v = direction.sign * speed
        axis = direction.axis
        if axis is ControlAxis.LATERAL:
            return cls(lateral=v)
        if axis is ControlAxis.LONGITUDINAL:
            return cls(longitudinal=v)
        if axis is ControlAxis.VERTICAL:
            return cls(vertical=v)
        return cls(yaw_rate=v)

    def component(self, axis: ControlAxis) -> float:
        if axis is ControlAxis.LATERAL:
            return self.lateral
        if axis is ControlAxis.LONGITUDINAL:
            return self.longitudinal
        if axis is ControlAxis.VERTICAL:
            return self.vertical
        return self.yaw_rate

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.lateral, self.longitudinal, self.yaw_rate, self.vertical

    @property
    def is_zero(self) -> bool:
        return not any(self.as_tuple())


FlightCommand.ZERO = FlightCommand()  # type: ignore[attr-defined]


@dataclass(frozen=True)
class VelocityCommand:
    """
    Client-facing live velocity for velocity-mode streaming.

    ``x`` is forward, ``y`` is rightward, ``z`` is upward (m/s), ``yaw_rate``
    is clockwise (deg/s).
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    yaw_rate: float = 0.0

    def to_flight_command(self) -> FlightCommand:
        return FlightCommand(
            lateral=self.y,
            longitudinal=self.x,
            yaw_rate=self.yaw_rate,
            vertical=self.z,
        )

    def to_dict(self) -> Dict[str, float]:
        return {"velX": self.x, "velY": self.y, "velZ": self.z, "yawRate": self.yaw_rate}


class VerticalControlMode(Enum):
    VELOCITY = auto()
    POSITION = auto()


class YawControlMode(Enum):
    ANGLE = auto()
    ANGULAR_VELOCITY = auto()


class RollPitchControlMode(Enum):
    ANGLE = auto()
    VELOCITY = auto()


@dataclass(frozen=True)
class AxisControlConfig:
    """How the flight controller interprets each channel of a flight command."""

    vertical: VerticalControlMode = VerticalControlMode.VELOCITY
    yaw: YawControlMode = YawControlMode.ANGULAR_VELOCITY
    roll_pitch: RollPitchControlMode = RollPitchControlMode.VELOCITY

    @property
    def is_velocity_config(self) -> bool:
        return self == VIRTUAL_STICK_AXIS_CONFIG


VIRTUAL_STICK_AXIS_CONFIG = AxisControlConfig(
    VerticalControlMode.VELOCITY,
    YawControlMode.ANGULAR_VELOCITY,
    RollPitchControlMode.VELOCITY,
)


@dataclass(frozen=True)
class ImuState:
    """
    Snapshot of vehicle velocity and attitude.

    Velocities are NED in m/s, attitude angles in degrees.
    """

    vel_x: float = 0.0
    vel_y: float = 0.0
    vel_z: float = 0.0
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "velX": self.vel_x,
            "velY": self.vel_y,
            "velZ": self.vel_z,
            "roll": self.roll,
            "pitch": self.pitch,
            "yaw": self.yaw,
        }


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


@dataclass
class CommandCompleted:
    """Outcome of an action request."""

    completed: bool
    error_description: Optional[str] = None

    @classmethod
    def ok(cls) -> "CommandCompleted":
        return cls(True, None)

    @classmethod
    def failed(cls, description: str) -> "CommandCompleted":
        return cls(False, description)

    def to_dict(self) -> Dict[str, Any]:
        return {"completed": self.completed, "errorDescription": self.error_description}


@dataclass
class StateResponse(Generic[T]):
    """Result of a state query."""

    state: T

    def to_dict(self) -> Dict[str, Any]:
        return {"state": _serialize(self.state)}


__all__ = [
    "ControlMode",
    "VelocityProfileKind",
    "ControlAxis",
    "Direction",
    "LimitKind",
    "MotionLimits",
    "FlightCommand",
    "VelocityCommand",
    "VerticalControlMode",
    "YawControlMode",
    "RollPitchControlMode",
    "AxisControlConfig",
    "VIRTUAL_STICK_AXIS_CONFIG",
    "ImuState",
    "CommandCompleted",
    "StateResponse",
]
