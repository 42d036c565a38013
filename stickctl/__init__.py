"""
stickctl: HTTP-driven, velocity-profiled motion control for MAVSDK vehicles.

Position mode flies bounded moves ("forward 2 m") as precomputed velocity
profiles; velocity mode streams a live velocity command set over HTTP.
"""

__version__ = "0.1.0"

from .config import ServerConfig
from .controller import MotionController
from .exceptions import ErrorCode, StickctlError
from .types import ControlMode, Direction, LimitKind, MotionLimits, VelocityProfileKind

__all__ = [
    "ControlMode",
    "Direction",
    "ErrorCode",
    "LimitKind",
    "MotionController",
    "MotionLimits",
    "ServerConfig",
    "StickctlError",
    "VelocityProfileKind",
    "__version__",
]
