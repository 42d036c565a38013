"""
Periodic IMU sampling.

``ImuRecorder`` polls an actuation channel for its latest velocity and
attitude every ``interval_ms`` milliseconds and keeps the newest
``max_samples`` of them in memory until cleared. A sample is ``None`` when
the channel had no data yet.
"""
from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Deque, List, Optional

from .actuation import ActuationChannel
from .constants import DEFAULT_IMU_INTERVAL_MS, DEFAULT_IMU_MAX_SAMPLES
from .exceptions import MalformedNumberError, StickctlError, ValidationError
from .logging import LogComponent, get_logger
from .types import ImuState
from .validation import parse_positive_int

logger = get_logger(LogComponent.TELEMETRY)


class ImuRecorder:
    """Records IMU snapshots from a channel at a fixed interval."""

    def __init__(self, channel: ActuationChannel, max_samples: int = DEFAULT_IMU_MAX_SAMPLES):
        self._channel = channel
        self._samples: Deque[Optional[ImuState]] = deque(maxlen=max_samples)
        self._overflow_logged = False
        self._task: Optional[asyncio.Task] = None
        self._interval_ms: int = DEFAULT_IMU_INTERVAL_MS
        self._started_at: Optional[float] = None

    @property
    def recording(self) -> bool:
        return self._task is not None

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def max_samples(self) -> int:
        return self._samples.maxlen

    @property
    def samples(self) -> List[Optional[ImuState]]:
        return list(self._samples)

    def current(self) -> Optional[ImuState]:
        return self._channel.imu_state()

    async def start(self, interval_ms=DEFAULT_IMU_INTERVAL_MS) -> None:
        """
        Start sampling, replacing any sampling already running.

        Raises:
            ValidationError: If ``interval_ms`` is not a positive integer.
        """
        try:
            interval = parse_positive_int(interval_ms, "interval")
        except ValidationError:
            raise MalformedNumberError(
                "Invalid value for interval. Must be a positive integer.",
                value=interval_ms,
                field="interval",
            ) from None

        await self.stop()
        self._interval_ms = interval
        self._started_at = time.time()
        self._task = asyncio.create_task(self._loop(interval / 1000.0))
        logger.info(f"IMU sampling started every {interval} ms")

    async def _loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                sample = self._channel.imu_state()
            except StickctlError as e:
                logger.warning(f"IMU read failed: {e.message}")
                sample = None
            if len(self._samples) == self._samples.maxlen and not self._overflow_logged:
                logger.warning(f"IMU buffer full at {self._samples.maxlen} samples, dropping oldest")
                self._overflow_logged = True
            self._samples.append(sample)

    async def stop(self) -> int:
        """Stop sampling and return the number of samples held."""
        if self._task is None:
            return len(self._samples)
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        elapsed = time.time() - (self._started_at or time.time())
        logger.info(f"IMU sampling stopped: {len(self._samples)} samples over {elapsed:.1f}s")
        return len(self._samples)

    def clear(self) -> None:
        self._samples.clear()
        self._overflow_logged = False


__all__ = ["ImuRecorder"]
