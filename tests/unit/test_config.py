"""Unit tests for server configuration loading."""

import pytest

from stickctl.config import ServerConfig
from stickctl.types import MotionLimits, VelocityProfileKind


class TestServerConfig:
    """Defaults, validation and overrides."""

    def test_defaults_are_valid(self):
        config = ServerConfig()
        assert config.validate() == []
        assert config.dispatch_interval_ms == 40
        assert config.dispatch_interval == pytest.approx(0.04)
        assert config.default_profile is VelocityProfileKind.CONSTANT
        assert config.limits == MotionLimits()

    def test_validate_reports_problems(self):
        config = ServerConfig(port=0, dispatch_interval_ms=-1)
        errors = config.validate()
        assert any("port" in e for e in errors)
        assert any("dispatch_interval_ms" in e for e in errors)

    def test_imu_buffer_must_be_positive(self):
        errors = ServerConfig(imu_max_samples=0).validate()
        assert errors == ["imu_max_samples must be positive"]

    def test_merged_ignores_none(self):
        config = ServerConfig(port=9000).merged(port=None, host="127.0.0.1")
        assert config.port == 9000
        assert config.host == "127.0.0.1"


class TestFromDict:
    """Mapping to config conversion."""

    def test_full(self):
        config = ServerConfig.from_dict(
            {
                "port": "9090",
                "dispatch_interval_ms": 20,
                "default_profile": "trapezoidal",
                "limits": {"max_speed": 0.5, "angular_speed": 45},
                "dry_run": True,
                "imu_max_samples": "500",
            }
        )
        assert config.port == 9090
        assert config.dispatch_interval_ms == 20.0
        assert config.default_profile is VelocityProfileKind.TRAPEZOIDAL
        assert config.limits.max_speed == 0.5
        assert config.limits.max_angular_speed == 45.0
        assert config.limits.max_acceleration == MotionLimits().max_acceleration
        assert config.dry_run is True
        assert config.imu_max_samples == 500

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            ServerConfig.from_dict({"prot": 8080})

    def test_bad_profile(self):
        with pytest.raises(ValueError, match="Profile must be either"):
            ServerConfig.from_dict({"default_profile": "LINEAR"})

    def test_bad_limit(self):
        with pytest.raises(ValueError, match="Jerk must be a positive float"):
            ServerConfig.from_dict({"limits": {"max_jerk": 0}})

    def test_bad_number(self):
        with pytest.raises(ValueError, match="Invalid value"):
            ServerConfig.from_dict({"port": "eighty"})

    def test_invalid_range(self):
        with pytest.raises(ValueError, match="port must be between"):
            ServerConfig.from_dict({"port": 70000})

    def test_not_a_mapping(self):
        with pytest.raises(ValueError, match="must be a mapping"):
            ServerConfig.from_dict(["port"])


class TestFromYaml:
    """YAML file loading."""

    def test_load(self, tmp_path):
        path = tmp_path / "server.yaml"
        path.write_text(
            "port: 8181\n"
            "connection: udpin://0.0.0.0:14550\n"
            "default_profile: S_CURVE\n"
            "limits:\n"
            "  maxSpeed: 0.4\n"
        )
        config = ServerConfig.from_yaml(path)
        assert config.port == 8181
        assert config.connection == "udpin://0.0.0.0:14550"
        assert config.default_profile is VelocityProfileKind.S_CURVE
        assert config.limits.max_speed == 0.4

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert ServerConfig.from_yaml(path) == ServerConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            ServerConfig.from_yaml(tmp_path / "missing.yaml")
