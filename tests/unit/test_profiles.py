"""Unit tests for velocity profile generation."""

import math

import pytest

from stickctl.exceptions import ValidationError
from stickctl.profiles import (
    build_profile,
    constant_profile,
    generate_commands,
    s_curve_profile,
    trapezoidal_profile,
)
from stickctl.types import ControlAxis, Direction, FlightCommand, MotionLimits, VelocityProfileKind

DT = 0.04
KINDS = list(VelocityProfileKind)


def _limits(**overrides) -> MotionLimits:
    base = dict(max_speed=0.5, max_acceleration=0.25, max_jerk=1.0)
    base.update(overrides)
    return MotionLimits(**base)


class TestConstantProfile:
    """Full speed for the whole move."""

    def test_forward_two_metres(self):
        commands = generate_commands(
            VelocityProfileKind.CONSTANT, 2.0, Direction.FORWARD, _limits(), DT
        )
        assert len(commands) == 101
        assert all(c == FlightCommand(longitudinal=0.5) for c in commands[:-1])
        assert commands[-1].is_zero

    def test_partial_last_interval_rounds_up(self):
        profile = constant_profile(1.0, 0.3)
        assert profile.sample_count(DT) == 84

    def test_rotation_uses_angular_speed(self):
        limits = _limits(max_angular_speed=30.0)
        commands = generate_commands(
            VelocityProfileKind.CONSTANT, 90.0, Direction.COUNTER_CLOCKWISE, limits, DT
        )
        assert len(commands) == 76
        assert commands[0] == FlightCommand(yaw_rate=-30.0)


class TestTrapezoidalProfile:
    """Accelerate, cruise, decelerate."""

    def test_phase_timing(self):
        profile = trapezoidal_profile(2.0, 0.5, 0.25)
        durations = [p.duration for p in profile.phases]
        assert durations == pytest.approx([2.0, 2.0, 2.0])
        assert profile.peak_velocity == pytest.approx(0.5)
        assert profile.distance == pytest.approx(2.0)

    def test_starts_and_ends_at_rest(self):
        profile = trapezoidal_profile(2.0, 0.5, 0.25)
        assert profile.velocity(0.0) == 0.0
        assert profile.phases[-1].end_velocity == pytest.approx(0.0, abs=1e-12)

    def test_triangle_when_cruise_unreachable(self):
        profile = trapezoidal_profile(2.0, 1.0, 0.1)
        assert profile.phases[1].duration == 0.0
        assert profile.peak_velocity == pytest.approx(math.sqrt(0.2))
        assert profile.distance == pytest.approx(2.0)

    def test_peak_bounded_by_half_distance(self):
        profile = trapezoidal_profile(0.1, 0.5, 0.25)
        assert profile.peak_velocity <= 0.05 + 1e-12


class TestSCurveProfile:
    """Seven-phase jerk-limited profile."""

    def test_phase_timing(self):
        profile = s_curve_profile(2.0, 0.5, 0.25, 1.0)
        durations = [p.duration for p in profile.phases]
        assert durations == pytest.approx([0.25, 1.75, 0.25, 1.75, 0.25, 1.75, 0.25])
        assert profile.peak_velocity == pytest.approx(0.5)
        assert profile.distance == pytest.approx(2.0)

    def test_velocity_is_continuous(self):
        profile = s_curve_profile(2.0, 0.5, 0.25, 1.0)
        for prev, nxt in zip(profile.phases, profile.phases[1:]):
            assert nxt.v0 == pytest.approx(prev.end_velocity)
            assert nxt.a0 == pytest.approx(prev.end_acceleration, abs=1e-12)
        assert profile.phases[-1].end_acceleration == pytest.approx(0.0, abs=1e-12)

    def test_acceleration_bounded(self):
        profile = s_curve_profile(2.0, 0.5, 0.25, 1.0)
        speeds = profile.sample(DT)
        steps = [abs(b - a) / DT for a, b in zip(speeds, speeds[1:])]
        assert max(steps) <= 0.25 + 1e-9

    def test_acceleration_capped_by_speed_ratio(self):
        profile = s_curve_profile(2.0, 0.2, 10.0, 100.0)
        peak_accel = max(abs(p.a0) for p in profile.phases)
        assert peak_accel == pytest.approx(0.75 * 0.2)

    @pytest.mark.parametrize(
        "distance, speed, acceleration, jerk",
        [
            (0.2, 1.0, 1.0, 0.01),
            (2.0, 1.0, 1.0, 0.7),
            (0.05, 0.5, 0.25, 1.0),
        ],
    )
    def test_degenerate_inputs_clamped(self, distance, speed, acceleration, jerk):
        profile = s_curve_profile(distance, speed, acceleration, jerk)
        assert all(p.duration >= 0 for p in profile.phases)
        assert profile.distance == pytest.approx(distance, rel=1e-6)
        assert profile.peak_velocity <= min(speed, distance / 2) + 1e-9
        assert all(v >= 0 for v in profile.sample(0.01))


class TestGenerateCommands:
    """Properties shared by every profile kind."""

    @pytest.mark.parametrize("kind", KINDS)
    @pytest.mark.parametrize("distance", [0.3, 1.0, 2.0])
    def test_integral_matches_distance(self, kind, distance):
        limits = _limits()
        profile = build_profile(kind, distance, Direction.RIGHT, limits)
        commands = generate_commands(kind, distance, Direction.RIGHT, limits, DT)
        travelled = sum(c.lateral for c in commands) * DT
        assert abs(travelled - distance) <= profile.peak_velocity * DT + 1e-9

    @pytest.mark.parametrize("kind", KINDS)
    def test_speed_limit_respected(self, kind):
        commands = generate_commands(kind, 2.0, Direction.UP, _limits(), DT)
        assert max(c.vertical for c in commands) <= 0.5 + 1e-9

    @pytest.mark.parametrize("kind", KINDS)
    def test_signed_along_direction(self, kind):
        commands = generate_commands(kind, 1.0, Direction.BACKWARD, _limits(), DT)
        assert all(c.longitudinal <= 0 for c in commands)
        assert all(c.component(ControlAxis.LATERAL) == 0 for c in commands)
        assert all(c.yaw_rate == 0 and c.vertical == 0 for c in commands)

    @pytest.mark.parametrize("kind", KINDS)
    def test_ends_with_zero(self, kind):
        commands = generate_commands(kind, 1.0, Direction.DOWN, _limits(), DT)
        assert commands[-1].is_zero

    @pytest.mark.parametrize("kind", KINDS)
    def test_length(self, kind):
        profile = build_profile(kind, 1.0, Direction.LEFT, _limits())
        commands = generate_commands(kind, 1.0, Direction.LEFT, _limits(), DT)
        assert len(commands) == math.ceil(round(profile.total_time / DT, 9)) + 1

    @pytest.mark.parametrize("magnitude", [0, -1.0, math.nan, math.inf, True])
    def test_rejects_bad_magnitude(self, magnitude):
        with pytest.raises(ValidationError):
            generate_commands(VelocityProfileKind.CONSTANT, magnitude, Direction.FORWARD, _limits(), DT)
