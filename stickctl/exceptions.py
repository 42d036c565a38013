"""
Exception hierarchy for stickctl.

A few base classes with error codes cover every failure the controller can
report. Specific cases are built by factory functions so callers can match on
``code`` without a class per case.
"""
from __future__ import annotations

from enum import Enum, auto
from typing import Any, Dict, Iterable, Optional


class ErrorCode(Enum):
    """Stable numeric codes, grouped by hundreds per failure area."""
    # Validation errors (1xx)
    VALIDATION_FAILED = 100
    INVALID_MAGNITUDE = 101
    INVALID_LIMIT = 102
    MALFORMED_NUMBER = 103
    INVALID_CHOICE = 104

    # Control state errors (2xx)
    CONTROL_STATE_ERROR = 200
    MODE_MISMATCH = 201
    MODE_TRANSITION = 202
    MOTION_BUSY = 203
    STREAM_NOT_ACTIVE = 204

    # Actuation errors (3xx)
    ACTUATION_FAILED = 300
    VIRTUAL_STICK_FAILED = 301
    COMMAND_SEND_FAILED = 302
    AXIS_CONFIG_FAILED = 303
    TAKEOFF_FAILED = 304
    LANDING_FAILED = 305
    REBOOT_FAILED = 306

    # Availability errors (4xx)
    UNAVAILABLE = 400
    CONNECTION_TIMEOUT = 401


class ErrorSeverity(Enum):
    """How badly a failure affects the flight."""
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()


class StickctlError(Exception):
    """
    Root of every error stickctl raises on purpose.

    Carries:
    - message: Human-readable description, returned verbatim to HTTP clients
    - code: ErrorCode, stable across releases
    - severity: ErrorSeverity, shown as a prefix in str()
    - details: keyword context, None values dropped
    - recoverable: False when the vehicle needs attention before retrying
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        recoverable: bool = True,
        **details: Any
    ):
        self.message = message
        self.code = code
        self.severity = severity
        self.recoverable = recoverable
        self.details: Dict[str, Any] = {k: v for k, v in details.items() if v is not None}
        super().__init__(message)

    def __str__(self) -> str:
        base = f"[{self.severity.name}] {self.message}"
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            base += f" ({detail_str})"
        return base


class ValidationError(StickctlError):
    """A request carried a value the controller cannot accept."""

    def __init__(
        self,
        message: str = "Invalid value",
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **details: Any
    ):
        super().__init__(
            message, code, ErrorSeverity.WARNING, True,
            field=field, value=value, **details
        )


class ControlStateError(StickctlError):
    """The request is not allowed in the controller's current state."""

    def __init__(
        self,
        message: str = "Request not allowed in current control state",
        code: ErrorCode = ErrorCode.CONTROL_STATE_ERROR,
        current_mode: Optional[str] = None,
        **details: Any
    ):
        super().__init__(
            message, code, ErrorSeverity.WARNING, True,
            current_mode=current_mode, **details
        )


class ModeMismatchError(ControlStateError):
    """A position or velocity request arrived in the other control mode."""

    def __init__(self, required: str, current: str):
        super().__init__(
            f"Cannot use {required} command in {current} control mode",
            ErrorCode.MODE_MISMATCH,
            current_mode=current,
            required_mode=required,
        )


class ModeTransitionError(ControlStateError):
    """Control mode change requested while a velocity stream is active."""

    def __init__(self, target: Optional[str] = None, current: Optional[str] = None):
        super().__init__(
            "Cannot change control mode while velocity commands are being followed. "
            "First stop velocity control and then try again.",
            ErrorCode.MODE_TRANSITION,
            current_mode=current,
            target_mode=target,
        )


class ActuationError(StickctlError):
    """The vehicle rejected or failed an actuation request."""

    def __init__(
        self,
        message: str = "Actuation failed",
        code: ErrorCode = ErrorCode.ACTUATION_FAILED,
        command: Optional[str] = None,
        reason: Optional[str] = None,
        **details: Any
    ):
        super().__init__(
            message, code, ErrorSeverity.ERROR, True,
            command=command, reason=reason, **details
        )


class ActuationModeError(ActuationError):
    """Enabling or disabling virtual-stick mode was rejected."""

    def __init__(self, enable: bool, reason: Optional[str] = None):
        action = "Enable" if enable else "Disable"
        super().__init__(
            f"Cannot {action} Virtual Sticks",
            ErrorCode.VIRTUAL_STICK_FAILED,
            command="virtual_stick",
            reason=reason,
            enable=enable,
        )


class ActuationCommandError(ActuationError):
    """A single flight control command could not be delivered."""

    def __init__(
        self,
        message: str = "Failed to send flight command",
        reason: Optional[str] = None,
        **details: Any
    ):
        super().__init__(
            message, ErrorCode.COMMAND_SEND_FAILED, command="send_command",
            reason=reason, **details
        )


class UnavailableError(StickctlError):
    """No vehicle is connected."""

    def __init__(
        self,
        message: str = "Drone Not Available",
        code: ErrorCode = ErrorCode.UNAVAILABLE,
        **details: Any
    ):
        super().__init__(message, code, ErrorSeverity.ERROR, True, **details)


# Factory functions for specific error types

def InvalidMagnitudeError(value: Optional[Any] = None, field: str = "magnitude") -> ValidationError:
    """Create an error for a non-positive move distance or angle."""
    return ValidationError(
        "Non-Positive Float not allowed", ErrorCode.INVALID_MAGNITUDE,
        field=field, value=value
    )


def InvalidLimitError(label: str = "Speed", value: Optional[Any] = None) -> ValidationError:
    """Create an error for a non-positive or non-finite motion limit."""
    return ValidationError(
        f"{label} must be a positive float", ErrorCode.INVALID_LIMIT,
        field=label.lower().replace(" ", "_"), value=value
    )


def MalformedNumberError(
    message: str = "Value must be a valid float",
    value: Optional[Any] = None,
    field: Optional[str] = None,
) -> ValidationError:
    """Create an error for numeric input that could not be parsed."""
    return ValidationError(message, ErrorCode.MALFORMED_NUMBER, field=field, value=value)


def InvalidChoiceError(
    field: str,
    value: Optional[Any],
    choices: Iterable[str],
    label: Optional[str] = None,
) -> ValidationError:
    """
    Create an error for an unknown enum name.

    The message lists the accepted names the way the HTTP clients expect,
    e.g. "Profile must be either 'CONSTANT', 'TRAPEZOIDAL' or 'S_CURVE'".
    """
    quoted = [f"'{c}'" for c in choices]
    if len(quoted) > 1:
        options = ", ".join(quoted[:-1]) + f" or {quoted[-1]}"
    else:
        options = "".join(quoted)
    return ValidationError(
        f"{label or field.capitalize()} must be either {options}",
        ErrorCode.INVALID_CHOICE,
        field=field,
        value=value,
    )


def MotionBusyError(current_mode: Optional[str] = None) -> ControlStateError:
    """Create an error for a motion request made while another one holds the vehicle."""
    return ControlStateError(
        "Another motion command is in progress",
        ErrorCode.MOTION_BUSY,
        current_mode=current_mode,
    )


def VelocityStreamInactiveError() -> ControlStateError:
    """Create an error for a velocity update sent before velocity control started."""
    return ControlStateError(
        "Cannot set velocity commands before starting Velocity Control",
        ErrorCode.STREAM_NOT_ACTIVE,
        current_mode="VELOCITY",
    )


def AxisConfigError(reason: Optional[str] = None) -> ActuationError:
    """Create an error for a rejected axis control configuration."""
    return ActuationError(
        "Failed to apply axis control configuration",
        ErrorCode.AXIS_CONFIG_FAILED,
        command="set_axis_config",
        reason=reason,
    )


def TakeoffError(message: str = "Takeoff failed", reason: Optional[str] = None) -> ActuationError:
    """Takeoff was rejected or did not complete."""
    return ActuationError(message, ErrorCode.TAKEOFF_FAILED, command="takeoff", reason=reason)


def LandingError(message: str = "Landing failed", reason: Optional[str] = None) -> ActuationError:
    """Landing was rejected; critical since the vehicle stays airborne."""
    err = ActuationError(message, ErrorCode.LANDING_FAILED, command="land", reason=reason)
    err.severity = ErrorSeverity.CRITICAL
    return err


def RebootError(message: str = "Reboot failed", reason: Optional[str] = None) -> ActuationError:
    """Autopilot refused the reboot."""
    return ActuationError(message, ErrorCode.REBOOT_FAILED, command="reboot", reason=reason)


def ConnectionTimeoutError(
    timeout: float = 30.0,
    address: Optional[str] = None,
) -> UnavailableError:
    """No heartbeat from the autopilot within ``timeout`` seconds."""
    return UnavailableError(
        "Connection timed out",
        ErrorCode.CONNECTION_TIMEOUT,
        address=address,
        timeout=timeout,
    )


__all__ = [
    # Enums
    "ErrorCode",
    "ErrorSeverity",
    # Base classes
    "StickctlError",
    "ValidationError",
    "ControlStateError",
    "ModeMismatchError",
    "ModeTransitionError",
    "ActuationError",
    "ActuationModeError",
    "ActuationCommandError",
    "UnavailableError",
    # Factories
    "InvalidMagnitudeError",
    "InvalidLimitError",
    "MalformedNumberError",
    "InvalidChoiceError",
    "MotionBusyError",
    "VelocityStreamInactiveError",
    "AxisConfigError",
    "TakeoffError",
    "LandingError",
    "RebootError",
    "ConnectionTimeoutError",
]
