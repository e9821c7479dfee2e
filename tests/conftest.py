"""Shared pytest fixtures for the alvr-usb test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from alvrusb.bridge.interfaces import AdbServerStatus
from alvrusb.config import Settings
from alvrusb.shared.models import DeviceRecord


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def settings() -> Settings:
    """Return a Settings instance that ignores any local config file."""
    return Settings(_env_file=None, alvr_path="")  # type: ignore[call-arg]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def quest2() -> DeviceRecord:
    return DeviceRecord(
        serial="ABC123",
        state="device",
        product="hollywood",
        display_name="hollywood",
        model_name="Quest_2",
        transport_id=3,
    )


@pytest.fixture()
def unannounced() -> DeviceRecord:
    """Attach notification sent before the device finished enumerating."""
    return DeviceRecord(serial="XYZ999", state="unauthorized")


@pytest.fixture()
def mock_bridge() -> AsyncMock:
    """Mock DeviceBridge with a healthy, empty server."""
    mock = AsyncMock()
    mock.get_status.return_value = AdbServerStatus(running=True, version=41)
    mock.list_devices.return_value = []
    mock.shell.return_value = ""
    return mock
