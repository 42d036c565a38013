"""
Server configuration for stickctl.

Values come from defaults in ``stickctl.constants``, optionally overridden by a
YAML file and then by command line flags. Example file::

    port: 8080
    connection: udpin://0.0.0.0:14540
    dispatch_interval_ms: 40
    default_profile: TRAPEZOIDAL
    limits:
      max_speed: 0.5
      max_acceleration: 0.25
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .constants import (
    DEFAULT_CONNECTION,
    DEFAULT_CONNECTION_TIMEOUT,
    DEFAULT_DISPATCH_INTERVAL_MS,
    DEFAULT_HOST,
    DEFAULT_IMU_INTERVAL_MS,
    DEFAULT_IMU_MAX_SAMPLES,
    DEFAULT_MAVSDK_PORT,
    DEFAULT_PORT,
)
from .exceptions import StickctlError
from .logging import LogComponent, get_logger
from .types import LimitKind, MotionLimits, VelocityProfileKind

logger = get_logger(LogComponent.CONFIG)


@dataclass
class ServerConfig:
    """Everything needed to run the HTTP control server."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    connection: str = DEFAULT_CONNECTION
    mavsdk_port: int = DEFAULT_MAVSDK_PORT
    connection_timeout: float = DEFAULT_CONNECTION_TIMEOUT
    dispatch_interval_ms: float = DEFAULT_DISPATCH_INTERVAL_MS
    default_profile: VelocityProfileKind = VelocityProfileKind.CONSTANT
    limits: MotionLimits = field(default_factory=MotionLimits)
    imu_interval_ms: int = DEFAULT_IMU_INTERVAL_MS
    imu_max_samples: int = DEFAULT_IMU_MAX_SAMPLES
    dry_run: bool = False

    @property
    def dispatch_interval(self) -> float:
        """Dispatch interval in seconds."""
        return self.dispatch_interval_ms / 1000.0

    def validate(self) -> List[str]:
        """Validate the configuration and return a list of problems."""
        errors = []
        if not 0 < self.port < 65536:
            errors.append("port must be between 1 and 65535")
        if not 0 < self.mavsdk_port < 65536:
            errors.append("mavsdk_port must be between 1 and 65535")
        if self.connection_timeout <= 0:
            errors.append("connection_timeout must be positive")
        if not math.isfinite(self.dispatch_interval_ms) or self.dispatch_interval_ms <= 0:
            errors.append("dispatch_interval_ms must be positive")
        if self.imu_interval_ms <= 0:
            errors.append("imu_interval_ms must be positive")
        if self.imu_max_samples <= 0:
            errors.append("imu_max_samples must be positive")
        if not self.connection:
            errors.append("connection must not be empty")
        errors.extend(self.limits.validate())
        return errors

    def merged(self, **overrides: Any) -> "ServerConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<dict>") -> "ServerConfig":
        """
        Build a config from a plain mapping.

        Raises:
            ValueError: On unknown keys, wrong types or invalid values.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {source} must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys in {source}: {', '.join(unknown)}")

        kwargs: Dict[str, Any] = {}
        try:
            for key in ("host", "connection"):
                if key in data:
                    kwargs[key] = str(data[key])
            for key in ("port", "mavsdk_port", "imu_interval_ms", "imu_max_samples"):
                if key in data:
                    kwargs[key] = int(data[key])
            for key in ("connection_timeout", "dispatch_interval_ms"):
                if key in data:
                    kwargs[key] = float(data[key])
            if "dry_run" in data:
                kwargs["dry_run"] = bool(data["dry_run"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value in {source}: {e}") from e

        try:
            if "default_profile" in data:
                kwargs["default_profile"] = VelocityProfileKind.from_string(
                    str(data["default_profile"])
                )
            if "limits" in data:
                kwargs["limits"] = _limits_from_dict(data["limits"], source)
        except StickctlError as e:
            raise ValueError(f"Invalid value in {source}: {e.message}") from e

        config = cls(**kwargs)
        errors = config.validate()
        if errors:
            raise ValueError(f"Invalid configuration in {source}: {'; '.join(errors)}")
        return config

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "ServerConfig":
        """Load server configuration from a YAML file."""
        config_path = Path(config_path)
        with config_path.open("r") as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        config = cls.from_dict(data, source=str(config_path))
        logger.info(f"Loaded configuration from {config_path}")
        return config


def _limits_from_dict(data: Optional[Dict[str, Any]], source: str) -> MotionLimits:
    if data is None:
        return MotionLimits()
    if not isinstance(data, dict):
        raise ValueError(f"'limits' in {source} must be a mapping")

    limits = MotionLimits()
    for name, value in data.items():
        kind = LimitKind.from_string(str(name))
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"Limit '{name}' in {source} must be a number") from None
        limits = limits.with_limit(kind, number)
    return limits


__all__ = ["ServerConfig"]
