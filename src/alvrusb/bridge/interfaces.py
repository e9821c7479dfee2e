"""Protocol interfaces for the ADB server capability surface."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from alvrusb.shared.models import DeviceRecord


@dataclass(frozen=True, slots=True)
class AdbServerStatus:
    """Result of a server status probe."""

    running: bool
    version: int | None = None


@runtime_checkable
class DeviceBridge(Protocol):
    """Protocol for talking to the device-bridge (ADB) server."""

    async def get_status(self) -> AdbServerStatus:
        """Probe whether the server is running.

        Raises:
            AdbError: If the server answered but the probe failed
        """
        ...

    async def start(self) -> None:
        """Start the server process.

        Raises:
            AdbError: If the server could not be started
        """
        ...

    async def connect(self) -> None:
        """Open and verify the control channel.

        Raises:
            AdbConnectionRefused: If the endpoint refused the connection
            AdbConnectionError: For any other connection failure
        """
        ...

    async def list_devices(self) -> list[DeviceRecord]:
        """Return every device currently known to the server."""
        ...

    async def create_forward(self, serial: str, local_port: int, remote_port: int) -> None:
        """Forward local TCP ``local_port`` to ``remote_port`` on the device."""
        ...

    async def remove_forward(self, serial: str, local_port: int) -> None:
        """Remove the forward listening on local TCP ``local_port``."""
        ...

    async def shell(self, serial: str, command: str) -> str:
        """Run a shell command on the device and return its output."""
        ...

    async def kill(self) -> None:
        """Stop the server process."""
        ...

    def track_devices(self) -> AsyncIterator[list[DeviceRecord]]:
        """Yield the full device list every time it changes."""
        ...
