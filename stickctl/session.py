"""
Virtual-stick session management.

A session takes exclusive low-level control of the vehicle for the duration of
a motion plan or velocity stream:

1. snapshot the current axis control configuration
2. switch to the velocity configuration
3. enable virtual-stick mode
4. (caller flies)
5. disable virtual-stick mode
6. restore the snapshot, on every exit path
"""
from __future__ import annotations

from types import TracebackType
from typing import Optional, Type

from .actuation import ActuationChannel
from .exceptions import StickctlError
from .logging import LogComponent, get_logger
from .types import VIRTUAL_STICK_AXIS_CONFIG, AxisControlConfig

logger = get_logger(LogComponent.SESSION)


class VirtualStickSession:
    """
    Async context manager holding virtual-stick control of one channel.

    Can also be driven explicitly with ``acquire`` and ``release`` when the
    session outlives a single coroutine, as a velocity stream does.

    Example:
        async with VirtualStickSession(channel):
            await dispatch_plan(channel, commands, 0.04)
    """

    def __init__(self, channel: ActuationChannel):
        self._channel = channel
        self._snapshot: Optional[AxisControlConfig] = None
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    @property
    def snapshot(self) -> Optional[AxisControlConfig]:
        return self._snapshot

    async def acquire(self) -> None:
        """
        Take virtual-stick control.

        Raises:
            ActuationModeError: If virtual-stick mode cannot be enabled. The
                axis configuration has already been restored when it propagates.
        """
        self._snapshot = await self._channel.get_axis_config()
        try:
            await self._channel.set_axis_config(VIRTUAL_STICK_AXIS_CONFIG)
            await self._channel.set_virtual_stick(True)
        except StickctlError as e:
            logger.error(f"Could not take virtual-stick control: {e.message}")
            await self._restore()
            raise
        self._held = True
        logger.debug(f"Virtual-stick session acquired (saved {self._snapshot})")

    async def release(self, body_failed: bool = False) -> None:
        """
        Give virtual-stick control back and restore the saved configuration.

        Args:
            body_failed: The code run inside the session raised. A disable
                failure is then only logged so the original error wins.

        Raises:
            ActuationModeError: If disabling virtual-stick mode fails and
                ``body_failed`` is False.
        """
        if not self._held:
            return
        self._held = False
        try:
            await self._channel.set_virtual_stick(False)
        except StickctlError as e:
            if not body_failed:
                raise
            logger.error(f"Could not disable virtual sticks after failed motion: {e.message}")
        finally:
            await self._restore()
        logger.debug("Virtual-stick session released")

    async def _restore(self) -> None:
        if self._snapshot is None:
            return
        try:
            await self._channel.set_axis_config(self._snapshot)
        except StickctlError as e:
            logger.error(f"Failed to restore axis configuration {self._snapshot}: {e.message}")

    async def __aenter__(self) -> "VirtualStickSession":
        await self.acquire()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.release(body_failed=exc_type is not None)


__all__ = ["VirtualStickSession"]
