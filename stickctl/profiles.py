"""
Velocity profile generation for position moves.

A move of magnitude ``D`` (metres, or degrees for rotations) along one
direction is planned as a scalar speed curve ``v(t)``, sampled every dispatch
interval and projected onto the signed axis of the direction.

Every profile is a chain of constant-jerk phases. Each phase starts with the
velocity the previous one ended with, so the curve is continuous by
construction. Three shapes are available:

- CONSTANT: full speed for ``D / v`` seconds
- TRAPEZOIDAL: accelerate, cruise, decelerate at a fixed acceleration
- S_CURVE: seven phases with bounded jerk

Inputs that cannot reach cruise speed within ``D`` are clamped to the
largest feasible profile of the same shape rather than rejected.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .constants import S_CURVE_ACCELERATION_RATIO
from .exceptions import InvalidMagnitudeError, MalformedNumberError
from .logging import LogComponent, get_logger
from .types import Direction, FlightCommand, MotionLimits, VelocityProfileKind

logger = get_logger(LogComponent.PROFILE)

# Quotients are rounded to this many decimals before taking the ceiling so
# float noise in total_time / dt never adds a sample.
_SAMPLE_COUNT_PRECISION = 9


@dataclass(frozen=True)
class ProfilePhase:
    """
    One constant-jerk segment of a profile.

    Attributes:
        duration: Length of the phase in seconds
        v0: Velocity at the start of the phase
        a0: Acceleration at the start of the phase
        jerk: Constant jerk for the whole phase
    """

    duration: float
    v0: float
    a0: float = 0.0
    jerk: float = 0.0

    def velocity(self, tau: float) -> float:
        return self.v0 + self.a0 * tau + 0.5 * self.jerk * tau * tau

    def acceleration(self, tau: float) -> float:
        return self.a0 + self.jerk * tau

    @property
    def end_velocity(self) -> float:
        return self.velocity(self.duration)

    @property
    def end_acceleration(self) -> float:
        return self.acceleration(self.duration)

    @property
    def distance(self) -> float:
        t = self.duration
        return self.v0 * t + self.a0 * t * t / 2 + self.jerk * t ** 3 / 6


def _chain(segments: Iterable[Tuple[float, float, float]], v_start: float = 0.0) -> Tuple[ProfilePhase, ...]:
    """Build phases from (duration, start acceleration, jerk) triples, carrying velocity."""
    phases = []
    v = v_start
    for duration, a0, jerk in segments:
        phase = ProfilePhase(max(duration, 0.0), v, a0, jerk)
        phases.append(phase)
        v = phase.end_velocity
    return tuple(phases)


@dataclass(frozen=True)
class VelocityProfile:
    """A planned speed curve. Always non-negative; the sign comes from the direction."""

    kind: VelocityProfileKind
    phases: Tuple[ProfilePhase, ...]

    @property
    def total_time(self) -> float:
        return sum(p.duration for p in self.phases)

    @property
    def distance(self) -> float:
        return sum(p.distance for p in self.phases)

    @property
    def peak_velocity(self) -> float:
        peak = 0.0
        for phase in self.phases:
            peak = max(peak, phase.v0, phase.end_velocity)
            # interior extremum of the quadratic
            if phase.jerk and 0 < -phase.a0 / phase.jerk < phase.duration:
                peak = max(peak, phase.velocity(-phase.a0 / phase.jerk))
        return peak

    def velocity(self, t: float) -> float:
        """Speed at time ``t``; zero outside ``[0, total_time)``."""
        if t < 0:
            return 0.0
        elapsed = 0.0
        for phase in self.phases:
            if t < elapsed + phase.duration:
                return max(phase.velocity(t - elapsed), 0.0)
            elapsed += phase.duration
        return 0.0

    def sample_count(self, dt: float) -> int:
        return math.ceil(round(self.total_time / dt, _SAMPLE_COUNT_PRECISION))

    def sample(self, dt: float) -> List[float]:
        """Speeds at ``t = k * dt`` for ``k = 0 .. ceil(total_time / dt) - 1``."""
        return [self.velocity(k * dt) for k in range(self.sample_count(dt))]


def constant_profile(distance: float, speed: float) -> VelocityProfile:
    """Full ``speed`` for ``distance / speed`` seconds."""
    return VelocityProfile(
        VelocityProfileKind.CONSTANT,
        (ProfilePhase(distance / speed, speed),),
    )


def trapezoidal_profile(distance: float, speed: float, acceleration: float) -> VelocityProfile:
    """
    Accelerate to ``min(distance / 2, speed)``, cruise, then decelerate.

    When the ramps alone would overshoot ``distance`` the cruise phase is
    dropped and the peak lowered to ``sqrt(acceleration * distance)``.
    """
    v_max = min(distance / 2, speed)
    a = acceleration

    cruise = (a * distance - v_max ** 2) / (a * v_max)
    if cruise < 0:
        v_max = math.sqrt(a * distance)
        cruise = 0.0
        logger.debug(f"Trapezoidal profile clamped to triangle, peak={v_max:.4f}")

    ramp = v_max / a
    return VelocityProfile(
        VelocityProfileKind.TRAPEZOIDAL,
        _chain([
            (ramp, a, 0.0),
            (cruise, 0.0, 0.0),
            (ramp, -a, 0.0),
        ]),
    )


def _s_curve_parameters(distance: float, speed: float, acceleration: float, jerk: float) -> Tuple[float, float]:
    """Return a feasible (v_max, a_max) pair for the S-curve."""
    v_max = min(distance / 2, speed)
    a_max = min(S_CURVE_ACCELERATION_RATIO * v_max, acceleration)
    j = jerk

    # Constant-acceleration phase would have negative length
    if v_max < a_max ** 2 / j:
        a_max = math.sqrt(v_max * j)

    # Ramps alone would overshoot the distance
    ramp_distance = v_max * (a_max / j + v_max / a_max)
    if ramp_distance > distance:
        ratio = a_max / j
        v_max = (a_max / 2) * (-ratio + math.sqrt(ratio ** 2 + 4 * distance / a_max))
        if v_max < a_max ** 2 / j:
            v_max = (distance * math.sqrt(j) / 2) ** (2.0 / 3.0)
            a_max = math.sqrt(v_max * j)
        logger.debug(f"S-curve profile clamped, peak={v_max:.4f} accel={a_max:.4f}")

    return v_max, a_max


def s_curve_profile(distance: float, speed: float, acceleration: float, jerk: float) -> VelocityProfile:
    """
    Seven-phase jerk-limited profile.

    Phase durations (before clamping)::

        t1 = t3 = t5 = t7 = a_max / j
        t2 = t6 = (v_max - a_max^2 / j) / a_max
        t4 = (a_max * j * D - v_max * a_max^2 - j * v_max^2) / (j * a_max * v_max)

    with ``v_max = min(D / 2, speed)`` and ``a_max = min(0.75 * v_max, acceleration)``.
    """
    v_max, a_max = _s_curve_parameters(distance, speed, acceleration, jerk)
    j = jerk

    t_jerk = a_max / j
    t_accel = max((v_max - a_max ** 2 / j) / a_max, 0.0)
    t_cruise = max(
        (a_max * j * distance - v_max * a_max ** 2 - j * v_max ** 2) / (j * a_max * v_max),
        0.0,
    )

    return VelocityProfile(
        VelocityProfileKind.S_CURVE,
        _chain([
            (t_jerk, 0.0, j),
            (t_accel, a_max, 0.0),
            (t_jerk, a_max, -j),
            (t_cruise, 0.0, 0.0),
            (t_jerk, 0.0, -j),
            (t_accel, -a_max, 0.0),
            (t_jerk, -a_max, j),
        ]),
    )


def build_profile(
    kind: VelocityProfileKind,
    magnitude: float,
    direction: Direction,
    limits: MotionLimits,
) -> VelocityProfile:
    """
    Plan the speed curve for a move, choosing the limit set for ``direction``.

    Raises:
        ValidationError: If ``magnitude`` is not a finite positive number.
    """
    if isinstance(magnitude, bool) or not isinstance(magnitude, (int, float)) or not math.isfinite(magnitude):
        raise MalformedNumberError("Non-Positive Float not allowed", value=magnitude, field="magnitude")
    if magnitude <= 0:
        raise InvalidMagnitudeError(magnitude)

    speed, acceleration, jerk = limits.for_direction(direction)
    if kind is VelocityProfileKind.CONSTANT:
        return constant_profile(magnitude, speed)
    if kind is VelocityProfileKind.TRAPEZOIDAL:
        return trapezoidal_profile(magnitude, speed, acceleration)
    return s_curve_profile(magnitude, speed, acceleration, jerk)


def commands_from_speeds(speeds: Sequence[float], direction: Direction) -> List[FlightCommand]:
    """Project scalar speeds onto ``direction`` and append the terminating zero command."""
    commands = [FlightCommand.along(direction, v) for v in speeds]
    commands.append(FlightCommand.ZERO)  # type: ignore[attr-defined]
    return commands


def generate_commands(
    kind: VelocityProfileKind,
    magnitude: float,
    direction: Direction,
    limits: MotionLimits,
    dt: float,
) -> List[FlightCommand]:
    """
    Generate the full command sequence for a position move.

    Args:
        kind: Profile shape
        magnitude: Distance in metres, or angle in degrees for rotations
        direction: Direction of the move
        limits: Limits snapshot to plan against
        dt: Dispatch interval in seconds

    Returns:
        ``ceil(total_time / dt)`` commands sampled at ``k * dt`` followed by
        one zero command.

    Examples:
        >>> cmds = generate_commands(VelocityProfileKind.CONSTANT, 2.0, Direction.FORWARD,
        ...                          MotionLimits(max_speed=0.5), 0.04)
        >>> len(cmds), cmds[0].longitudinal, cmds[-1].is_zero
        (101, 0.5, True)
    """
    profile = build_profile(kind, magnitude, direction, limits)
    speeds = profile.sample(dt)
    logger.debug(
        f"{kind.name} plan for {direction.name} {magnitude}: "
        f"{len(speeds)} samples over {profile.total_time:.3f}s, peak={profile.peak_velocity:.4f}"
    )
    return commands_from_speeds(speeds, direction)


__all__ = [
    "ProfilePhase",
    "VelocityProfile",
    "constant_profile",
    "trapezoidal_profile",
    "s_curve_profile",
    "build_profile",
    "commands_from_speeds",
    "generate_commands",
]
