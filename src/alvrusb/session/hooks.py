"""User-configured shell commands run when a session opens or closes."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from alvrusb.shared.exceptions import HookError
from alvrusb.shared.models import DeviceRecord

logger = logging.getLogger(__name__)


class ShellHook:
    """Start a shell command without waiting for it.

    The child gets the device identity in ``ALVRUSB_DEVICE_SERIAL`` /
    ``ALVRUSB_DEVICE_PRODUCT`` and the event name in ``ALVRUSB_EVENT``.
    Its combined output is collected by a background task and logged at
    debug level; a non-zero exit status is logged as a warning.
    """

    def __init__(self, command: str, *, event: str, working_dir: Path | None = None) -> None:
        self._command = command
        self._event = event
        self._working_dir = working_dir
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def command(self) -> str:
        return self._command

    async def fire(self, device: DeviceRecord) -> None:
        """Start the hook process.

        Raises:
            HookError: If the command could not be started.
        """
        env = {
            **os.environ,
            "ALVRUSB_EVENT": self._event,
            "ALVRUSB_DEVICE_SERIAL": device.serial,
            "ALVRUSB_DEVICE_PRODUCT": device.product,
        }
        try:
            proc = await asyncio.create_subprocess_shell(
                self._command,
                cwd=str(self._working_dir) if self._working_dir else None,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise HookError(f"{self._event} hook failed to start: {exc}") from exc

        logger.info("running %s hook (pid %s)", self._event, proc.pid)
        task = asyncio.create_task(self._collect(proc))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait(self) -> None:
        """Wait for every started hook to exit."""
        if self._pending:
            await asyncio.gather(*self._pending)

    async def close(self) -> None:
        """Stop collecting output; hook processes still running are left alone."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _collect(self, proc: asyncio.subprocess.Process) -> None:
        stdout_b, _ = await proc.communicate()
        output = (stdout_b or b"").decode(errors="replace").strip()
        if output:
            logger.debug("%s hook output:\n%s", self._event, output)
        if proc.returncode:
            logger.warning("%s hook exited with status %d", self._event, proc.returncode)
