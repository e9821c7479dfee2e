"""Protocol interfaces for session side effects."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from alvrusb.shared.models import DeviceRecord


@runtime_checkable
class ServerLauncher(Protocol):
    """Protocol for starting the desktop companion server."""

    async def launch_if_needed(self) -> bool:
        """Start the server unless an instance is already running.

        Returns:
            True if a new process was started

        Raises:
            LaunchError: If the process could not be spawned
        """
        ...


@runtime_checkable
class ClientLauncher(Protocol):
    """Protocol for starting the companion app on the headset."""

    async def launch_if_needed(self, device: DeviceRecord) -> bool:
        """Start the client activity if installed and not running.

        Returns:
            True if a launch command was issued

        Raises:
            AdbError: If a probe or the launch command failed
            LaunchError: If the device refused to start the activity
        """
        ...


@runtime_checkable
class SessionHook(Protocol):
    """Protocol for user commands run on session open/close."""

    async def fire(self, device: DeviceRecord) -> None:
        """Start the hook without waiting for it to finish.

        Raises:
            HookError: If the command could not be started
        """
        ...

    async def close(self) -> None:
        """Cancel background work left over from earlier fires."""
        ...
