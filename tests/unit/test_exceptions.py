"""Unit tests for stickctl exception types."""

import pytest

from stickctl.exceptions import (
    ActuationError,
    ActuationModeError,
    ControlStateError,
    ErrorCode,
    ErrorSeverity,
    InvalidChoiceError,
    InvalidLimitError,
    InvalidMagnitudeError,
    LandingError,
    ModeMismatchError,
    ModeTransitionError,
    MotionBusyError,
    StickctlError,
    UnavailableError,
    ValidationError,
    VelocityStreamInactiveError,
)


class TestStickctlError:
    """Base exception."""

    def test_message(self):
        e = StickctlError("test message")
        assert e.message == "test message"
        assert "test message" in str(e)

    def test_details_drop_none(self):
        e = StickctlError("x", ErrorCode.VALIDATION_FAILED, field="speed", value=None)
        assert e.details == {"field": "speed"}
        assert "field=speed" in str(e)

    def test_severity_in_str(self):
        e = StickctlError("x", severity=ErrorSeverity.CRITICAL)
        assert str(e).startswith("[CRITICAL]")

    def test_severity_levels(self):
        assert [s.name for s in ErrorSeverity] == ["WARNING", "ERROR", "CRITICAL"]


class TestClientMessages:
    """Messages returned verbatim to HTTP clients."""

    def test_mode_mismatch(self):
        e = ModeMismatchError("POSITION", "VELOCITY")
        assert e.message == "Cannot use POSITION command in VELOCITY control mode"
        assert e.code is ErrorCode.MODE_MISMATCH
        assert isinstance(e, ControlStateError)

    def test_mode_transition(self):
        e = ModeTransitionError("POSITION", "VELOCITY")
        assert e.message.startswith("Cannot change control mode while velocity commands")
        assert e.code is ErrorCode.MODE_TRANSITION

    def test_invalid_magnitude(self):
        e = InvalidMagnitudeError(-1.0)
        assert e.message == "Non-Positive Float not allowed"
        assert e.code is ErrorCode.INVALID_MAGNITUDE
        assert isinstance(e, ValidationError)

    def test_invalid_limit(self):
        e = InvalidLimitError("Angular speed", 0)
        assert e.message == "Angular speed must be a positive float"
        assert e.details["field"] == "angular_speed"

    def test_invalid_choice_lists_options(self):
        e = InvalidChoiceError("profile", "LINEAR", ["CONSTANT", "TRAPEZOIDAL", "S_CURVE"], label="Profile")
        assert e.message == "Profile must be either 'CONSTANT', 'TRAPEZOIDAL' or 'S_CURVE'"

    def test_invalid_choice_two_options(self):
        e = InvalidChoiceError("mode", "X", ["POSITION", "VELOCITY"], label="Control mode")
        assert e.message == "Control mode must be either 'POSITION' or 'VELOCITY'"

    def test_motion_busy(self):
        e = MotionBusyError("POSITION")
        assert e.code is ErrorCode.MOTION_BUSY
        assert e.details["current_mode"] == "POSITION"

    def test_stream_inactive(self):
        e = VelocityStreamInactiveError()
        assert e.message == "Cannot set velocity commands before starting Velocity Control"

    @pytest.mark.parametrize("enable, word", [(True, "Enable"), (False, "Disable")])
    def test_actuation_mode(self, enable, word):
        e = ActuationModeError(enable, reason="denied")
        assert e.message == f"Cannot {word} Virtual Sticks"
        assert e.code is ErrorCode.VIRTUAL_STICK_FAILED
        assert isinstance(e, ActuationError)

    def test_unavailable(self):
        assert UnavailableError().message == "Drone Not Available"

    def test_landing_is_critical(self):
        assert LandingError().severity is ErrorSeverity.CRITICAL


class TestErrorCodes:
    """Code ranges group errors by family."""

    def test_families(self):
        assert 100 <= ErrorCode.MALFORMED_NUMBER.value < 200
        assert 200 <= ErrorCode.MOTION_BUSY.value < 300
        assert 300 <= ErrorCode.COMMAND_SEND_FAILED.value < 400
        assert 400 <= ErrorCode.UNAVAILABLE.value < 500
