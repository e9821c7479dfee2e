"""ADB server client built on adbutils.

adbutils is blocking, so every call runs in the default executor. adbutils
also starts a server by itself when it cannot connect; each request is
therefore preceded by a plain TCP connect to the endpoint so that a server
which is down is reported instead of silently restarted.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import AsyncIterator, Callable
from functools import partial
from typing import Any, TypeVar

import adbutils
import adbutils.errors

from alvrusb.bridge.interfaces import AdbServerStatus
from alvrusb.shared.exceptions import AdbConnectionError, AdbConnectionRefused, AdbError
from alvrusb.shared.models import DeviceRecord

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def device_record(info: adbutils.AdbDeviceInfo) -> DeviceRecord:
    """Convert one ``devices -l`` entry into a device record."""
    tags = info.tags
    return DeviceRecord(
        serial=info.serial,
        state=info.state,
        product=tags.get("product", ""),
        display_name=tags.get("device", ""),
        model_name=tags.get("model", ""),
        transport_id=info.transport_id,
    )


class AdbClient:
    """Implementation of the ``DeviceBridge`` protocol for a local ADB server."""

    def __init__(
        self,
        *,
        adb_bin: str = "adb",
        host: str = "127.0.0.1",
        port: int = 5037,
        timeout: int = 10,
        client_factory: Callable[..., adbutils.AdbClient] = adbutils.AdbClient,
    ) -> None:
        self._adb_bin = adb_bin
        self._host = host
        self._port = port
        self._timeout = timeout
        self._client_factory = client_factory
        self._adb: adbutils.AdbClient | None = None

    @property
    def endpoint(self) -> str:
        return f"{self._host}:{self._port}"

    def _client(self) -> adbutils.AdbClient:
        """Lazy-initialise the adbutils client for request/response calls."""
        if self._adb is None:
            self._adb = self._client_factory(host=self._host, port=self._port, socket_timeout=self._timeout)
        return self._adb

    async def get_status(self) -> AdbServerStatus:
        """Ask the server for its version.

        Returns:
            ``running=False`` when nothing listens on the endpoint.

        Raises:
            AdbError: If the server is reachable but the request failed.
        """
        try:
            version = await self._call(self._client().server_version)
        except AdbConnectionRefused:
            return AdbServerStatus(running=False)
        return AdbServerStatus(running=True, version=version)

    async def start(self) -> None:
        """Start the server with ``adb start-server``.

        Raises:
            AdbError: If the CLI is missing, times out or exits non-zero.
        """
        stdout, stderr, rc = await self._run("-P", str(self._port), "start-server")
        if rc != 0:
            raise AdbError(f"adb start-server failed (rc={rc}): {stderr or stdout}")
        logger.debug("adb start-server: %s", stdout or stderr)

    async def connect(self) -> None:
        """Check the server answers on the control channel.

        Raises:
            AdbConnectionRefused: If the endpoint refused the connection.
            AdbConnectionError: If the endpoint is otherwise unreachable.
            AdbError: If the server answered with an error.
        """
        version = await self._call(self._client().server_version)
        logger.debug("ADB server %s answered version %d", self.endpoint, version)

    async def list_devices(self) -> list[DeviceRecord]:
        """Return every device currently known to the server, offline ones included."""
        infos = await self._call(self._client().list, extended=True)
        return [device_record(info) for info in infos]

    async def create_forward(self, serial: str, local_port: int, remote_port: int) -> None:
        """Forward ``tcp:local_port`` to ``tcp:remote_port`` on ``serial``.

        Raises:
            AdbError: If the server rejected the forward.
        """
        device = self._client().device(serial=serial)
        await self._call(device.forward, f"tcp:{local_port}", f"tcp:{remote_port}")

    async def remove_forward(self, serial: str, local_port: int) -> None:
        """Remove the forward listening on ``tcp:local_port``; missing forwards are ignored."""
        device = self._client().device(serial=serial)
        await self._call(device.forward_remove, f"tcp:{local_port}", raise_non_found=False)

    async def shell(self, serial: str, command: str) -> str:
        """Execute a shell command on ``serial``.

        Args:
            serial: Target device serial.
            command: Shell command line.

        Returns:
            Command output, stripped.

        Raises:
            AdbError: If the device is gone or the request failed.
        """
        device = self._client().device(serial=serial)
        output = await self._call(device.shell, command, timeout=self._timeout)
        return str(output).strip()

    async def kill(self) -> None:
        """Ask the server to exit with ``host:kill``."""
        await self._call(self._client().server_kill)
        logger.info("ADB server on %s stopped", self.endpoint)

    async def track_devices(self) -> AsyncIterator[list[DeviceRecord]]:
        """Yield the complete device list on every change.

        The server pushes a notification on ``host:track-devices`` whenever a
        device appears, disappears or changes state; each one triggers a
        fresh ``devices -l`` listing so records carry their product tags.

        Raises:
            AdbConnectionError: When the tracking stream drops.
        """
        # Separate client without a socket timeout: the stream idles between changes
        tracker = self._client_factory(host=self._host, port=self._port)
        conn = await self._call(tracker.make_connection)
        try:
            await self._call(_subscribe, conn)
            while True:
                try:
                    await self._call(conn.read_string_block, check=False, bounded=False)
                except AdbError as exc:
                    raise AdbConnectionError(f"device tracking stream from {self.endpoint} closed: {exc}") from exc
                yield await self.list_devices()
        finally:
            _abort(conn)

    async def _call(
        self,
        func: Callable[..., _T],
        *args: Any,
        check: bool = True,
        bounded: bool = True,
        **kwargs: Any,
    ) -> _T:
        """Run a blocking adbutils call in the default executor.

        Raises:
            AdbConnectionRefused: If the endpoint refused the connection.
            AdbConnectionError: If the endpoint is unreachable.
            AdbError: For failed or timed-out requests.
        """
        loop = asyncio.get_running_loop()
        job = loop.run_in_executor(None, partial(self._invoke, func, args, kwargs, check))
        if not bounded:
            return await job
        try:
            return await asyncio.wait_for(job, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            name = getattr(func, "__name__", "request")
            raise AdbError(f"ADB {name} on {self.endpoint} timed out") from exc

    def _invoke(self, func: Callable[..., _T], args: tuple[Any, ...], kwargs: dict[str, Any], check: bool) -> _T:
        if check:
            self._ensure_reachable()
        try:
            return func(*args, **kwargs)
        except adbutils.AdbTimeout as exc:
            raise AdbError(f"ADB request to {self.endpoint} timed out") from exc
        except adbutils.errors.AdbConnectionError as exc:
            raise AdbConnectionError(f"cannot reach ADB server at {self.endpoint}: {exc}") from exc
        except adbutils.AdbError as exc:
            raise AdbError(f"ADB request failed: {exc}") from exc
        except (OSError, EOFError) as exc:
            raise AdbConnectionError(f"lost connection to ADB server at {self.endpoint}: {exc}") from exc

    def _ensure_reachable(self) -> None:
        try:
            with socket.create_connection((self._host, self._port), timeout=self._timeout):
                pass
        except ConnectionRefusedError as exc:
            raise AdbConnectionRefused(f"connection to ADB server at {self.endpoint} refused") from exc
        except OSError as exc:
            raise AdbConnectionError(f"cannot reach ADB server at {self.endpoint}: {exc}") from exc

    async def _run(self, *args: str) -> tuple[str, str, int]:
        """Run an ADB command and return (stdout, stderr, returncode)."""
        cmd = [self._adb_bin, *args]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout_b, stderr_b = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise AdbError(f"ADB command timed out: {' '.join(cmd)}") from exc
        except FileNotFoundError as exc:
            raise AdbError(f"adb binary not found: {self._adb_bin}") from exc

        return (
            stdout_b.decode(errors="replace").strip(),
            stderr_b.decode(errors="replace").strip(),
            proc.returncode or 0,
        )


def _subscribe(conn: adbutils.AdbConnection) -> None:
    conn.send_command("host:track-devices")
    conn.check_okay()


def _abort(conn: adbutils.AdbConnection) -> None:
    """Close ``conn`` and wake an executor thread blocked reading it."""
    if conn.closed:
        return
    try:
        conn.conn.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    conn.close()
