"""Unit tests for virtual-stick session management."""

import pytest

from stickctl.actuation import HOLD_AXIS_CONFIG
from stickctl.exceptions import ActuationModeError, ErrorCode, StickctlError
from stickctl.session import VirtualStickSession
from stickctl.testing import MockActuationChannel
from stickctl.types import VIRTUAL_STICK_AXIS_CONFIG


class TestVirtualStickSession:
    """Acquire, release and restore."""

    @pytest.mark.asyncio
    async def test_context_manager_sequence(self):
        channel = MockActuationChannel()
        async with VirtualStickSession(channel) as session:
            assert session.held
            assert session.snapshot == HOLD_AXIS_CONFIG
            assert channel.virtual_stick_enabled
            assert channel.axis_config == VIRTUAL_STICK_AXIS_CONFIG
        assert not session.held
        assert not channel.virtual_stick_enabled
        assert channel.axis_config == HOLD_AXIS_CONFIG
        assert channel.axis_config_history == [VIRTUAL_STICK_AXIS_CONFIG, HOLD_AXIS_CONFIG]
        assert channel.virtual_stick_history == [True, False]

    @pytest.mark.asyncio
    async def test_enable_failure_restores_and_raises(self):
        channel = MockActuationChannel()
        channel.fail_enable_virtual_stick = True
        session = VirtualStickSession(channel)
        with pytest.raises(ActuationModeError) as exc:
            await session.acquire()
        assert exc.value.message == "Cannot Enable Virtual Sticks"
        assert not session.held
        assert channel.axis_config == HOLD_AXIS_CONFIG

    @pytest.mark.asyncio
    async def test_body_error_propagates_and_restores(self):
        channel = MockActuationChannel()
        with pytest.raises(RuntimeError):
            async with VirtualStickSession(channel):
                raise RuntimeError("motion failed")
        assert not channel.virtual_stick_enabled
        assert channel.axis_config == HOLD_AXIS_CONFIG

    @pytest.mark.asyncio
    async def test_disable_failure_raises_after_restore(self):
        channel = MockActuationChannel()
        channel.fail_disable_virtual_stick = True
        with pytest.raises(ActuationModeError) as exc:
            async with VirtualStickSession(channel):
                pass
        assert exc.value.message == "Cannot Disable Virtual Sticks"
        assert channel.axis_config == HOLD_AXIS_CONFIG

    @pytest.mark.asyncio
    async def test_disable_failure_does_not_mask_body_error(self):
        channel = MockActuationChannel()
        channel.fail_disable_virtual_stick = True
        with pytest.raises(RuntimeError):
            async with VirtualStickSession(channel):
                raise RuntimeError("motion failed")
        assert channel.axis_config == HOLD_AXIS_CONFIG

    @pytest.mark.asyncio
    async def test_restore_failure_is_logged_not_raised(self):
        channel = MockActuationChannel()
        channel.fail_restore_axis_config = True
        async with VirtualStickSession(channel):
            pass
        assert not channel.virtual_stick_enabled
        assert channel.axis_config == VIRTUAL_STICK_AXIS_CONFIG

    @pytest.mark.asyncio
    async def test_snapshot_failure_leaves_channel_untouched(self):
        channel = MockActuationChannel(connected=False)
        with pytest.raises(StickctlError) as exc:
            await VirtualStickSession(channel).acquire()
        assert exc.value.code is ErrorCode.UNAVAILABLE
        assert channel.axis_config_history == []

    @pytest.mark.asyncio
    async def test_release_without_acquire_is_noop(self):
        channel = MockActuationChannel()
        await VirtualStickSession(channel).release()
        assert channel.virtual_stick_history == []
