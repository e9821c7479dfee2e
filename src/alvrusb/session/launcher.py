"""Companion application launchers (desktop server, headset client)."""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from collections.abc import Callable, Iterable
from functools import partial
from pathlib import Path
from typing import Any

import psutil

from alvrusb.bridge.interfaces import DeviceBridge
from alvrusb.shared.exceptions import LaunchError
from alvrusb.shared.models import DeviceRecord

logger = logging.getLogger(__name__)

# SteamVR's monitor; the ALVR launcher hands over to it once streaming starts
VR_MONITOR_PROCESS = "vrmonitor"


def _process_stem(name: str) -> str:
    name = name.lower()
    return name[:-4] if name.endswith(".exe") else name


def _detach_kwargs() -> dict[str, Any]:
    if sys.platform == "win32":
        return {"creationflags": getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)}
    return {"start_new_session": True}


class CompanionServerLauncher:
    """Start the desktop companion server unless it already runs.

    The launcher process may be gone by the time streaming works (SteamVR's
    ``vrmonitor`` takes over), so both the well-known monitor name and the
    configured executable's name count as "already running".
    """

    def __init__(
        self,
        path: Path,
        *,
        process_names: Iterable[str] = (VR_MONITOR_PROCESS,),
        process_iter: Callable[..., Iterable[Any]] = psutil.process_iter,
        popen: Callable[..., Any] = subprocess.Popen,
    ) -> None:
        self._path = Path(path)
        self._names = {_process_stem(n) for n in process_names} | {_process_stem(self._path.name)}
        self._process_iter = process_iter
        self._popen = popen

    @property
    def path(self) -> Path:
        return self._path

    def running_instance(self) -> str | None:
        """Name of a matching running process, if any."""
        for proc in self._process_iter(["name"]):
            name = proc.info.get("name")
            if name and _process_stem(name) in self._names:
                return str(name)
        return None

    async def launch_if_needed(self) -> bool:
        """Start the server unless an instance is already running.

        Returns:
            True if a new process was started.

        Raises:
            LaunchError: If the executable could not be spawned.
        """
        loop = asyncio.get_running_loop()
        running = await loop.run_in_executor(None, self.running_instance)
        if running is not None:
            logger.debug("process found: %s", running)
            return False

        logger.debug("process not found: %s", ", ".join(sorted(self._names)))
        try:
            await loop.run_in_executor(
                None,
                partial(
                    self._popen,
                    [str(self._path)],
                    cwd=str(self._path.parent),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    **_detach_kwargs(),
                ),
            )
        except OSError as exc:
            raise LaunchError(f"failed to launch {self._path}: {exc}") from exc

        logger.info("Launching ALVR...")
        return True


class CompanionClientLauncher:
    """Start the companion activity on the headset when it is not running.

    Two probes precede the launch: is the package installed, and does it
    already have a process.
    """

    def __init__(self, bridge: DeviceBridge, activity: str) -> None:
        package, sep, _ = activity.partition("/")
        if not sep or not package:
            raise ValueError(f"client activity must look like 'package/activity': {activity!r}")
        self._bridge = bridge
        self._activity = activity
        self._package = package

    @property
    def package(self) -> str:
        return self._package

    async def is_installed(self, serial: str) -> bool:
        output = await self._bridge.shell(serial, f"pm list packages {self._package}")
        return f"package:{self._package}" in {line.strip() for line in output.splitlines()}

    async def is_running(self, serial: str) -> bool:
        output = await self._bridge.shell(serial, f"pidof {self._package}")
        return bool(output.strip())

    async def launch_if_needed(self, device: DeviceRecord) -> bool:
        """Start the client activity if installed and not running.

        Returns:
            True if a launch command was issued.

        Raises:
            AdbError: If a probe or the launch command failed.
            LaunchError: If ``am start`` reported an error.
        """
        serial = device.serial
        if not await self.is_installed(serial):
            logger.warning("client %s is not installed on %s", self._package, serial)
            return False
        if await self.is_running(serial):
            logger.debug("client %s already running on %s", self._package, serial)
            return False

        output = await self._bridge.shell(serial, f"am start -n {self._activity}")
        if "Error" in output:
            raise LaunchError(f"failed to start {self._activity} on {serial}: {output}")
        logger.info("Launching client %s on %s", self._package, serial)
        return True
