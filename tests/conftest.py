"""
Pytest configuration and fixtures for stickctl tests.

Unit tests run against MockActuationChannel with a short dispatch interval so
whole moves finish in well under a second.
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest
import pytest_asyncio

from stickctl.config import ServerConfig
from stickctl.controller import MotionController
from stickctl.logging import LogLevel, configure_logging
from stickctl.testing import MockActuationChannel
from stickctl.types import MotionLimits

# Fast enough to keep tests short, slow enough that sends interleave with requests
TEST_DISPATCH_INTERVAL_MS = 2


def pytest_configure(config: pytest.Config) -> None:
    """Pytest configuration."""
    configure_logging(level=LogLevel.DEBUG, colored=False)


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    """Auto-apply markers based on test path."""
    for item in items:
        path_str = str(item.path)
        if "/unit/" in path_str:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in path_str:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def fast_limits() -> MotionLimits:
    """Limits that let small test moves finish in a few dozen ticks."""
    return MotionLimits(
        max_speed=1.0,
        max_angular_speed=90.0,
        max_acceleration=2.0,
        max_angular_acceleration=180.0,
        max_jerk=8.0,
        max_angular_jerk=720.0,
    )


@pytest.fixture
def test_config(fast_limits: MotionLimits) -> ServerConfig:
    """Server configuration with a short dispatch interval."""
    return ServerConfig(dispatch_interval_ms=TEST_DISPATCH_INTERVAL_MS, limits=fast_limits)


@pytest.fixture
def mock_channel() -> MockActuationChannel:
    """Connected mock vehicle."""
    return MockActuationChannel()


@pytest_asyncio.fixture
async def controller(
    mock_channel: MockActuationChannel, test_config: ServerConfig
) -> AsyncGenerator[MotionController, None]:
    """Controller over the mock vehicle, shut down after the test."""
    ctrl = MotionController(mock_channel, test_config)
    yield ctrl
    await ctrl.shutdown()
