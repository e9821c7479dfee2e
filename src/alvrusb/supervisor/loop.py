"""Backend supervisor: keep the ADB server up and the device feed subscribed."""

from __future__ import annotations

import asyncio
import logging

from alvrusb.bridge.interfaces import DeviceBridge
from alvrusb.bridge.monitor import DeviceMonitor
from alvrusb.session.debounce import RecentEventCache
from alvrusb.shared.enums import BackendState
from alvrusb.shared.exceptions import AdbConnectionRefused, AdbError
from alvrusb.supervisor.dispatcher import DeviceEventDispatcher

logger = logging.getLogger(__name__)


class BackendSupervisor:
    """Tick-based health loop for the ADB server.

    Each tick probes the server, (re)starts it when it is not running,
    (re)connects the control channel, subscribes to device events on the
    first healthy tick only, and sweeps the debounce cache.

    A refused control connection is fatal: :meth:`tick` re-raises
    :class:`AdbConnectionRefused`. Every other failure is logged and retried
    on the next tick.
    """

    def __init__(
        self,
        bridge: DeviceBridge,
        monitor: DeviceMonitor,
        dispatcher: DeviceEventDispatcher,
        cache: RecentEventCache,
        *,
        tick_interval: float = 0.1,
    ) -> None:
        self._bridge = bridge
        self._monitor = monitor
        self._dispatcher = dispatcher
        self._cache = cache
        self._tick_interval = tick_interval
        self._state = BackendState.UNKNOWN
        self._connected = False
        self._healthy_before = False
        self._launched_backend = False
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def launched_backend(self) -> bool:
        """Whether this process started the ADB server at least once."""
        return self._launched_backend

    @property
    def subscribed(self) -> bool:
        return bool(self._tasks)

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Tick until ``stop_event`` is set.

        Raises:
            AdbConnectionRefused: If the ADB server refused the control connection.
        """
        logger.debug("Checking initial ADB server status...")
        try:
            while True:
                if stop_event is not None and stop_event.is_set():
                    logger.info("stop_event set; shutting down supervisor")
                    return
                await self.tick()
                await asyncio.sleep(self._tick_interval)
        finally:
            await self._unsubscribe()

    async def tick(self) -> BackendState:
        """Run one supervision cycle and return the resulting state."""
        try:
            await self._check_backend()
        finally:
            self._cache.sweep()
        return self._state

    async def _check_backend(self) -> None:
        running = False
        try:
            running = (await self._bridge.get_status()).running
        except AdbError as exc:
            logger.error("ADB server status check failed: %s", exc)

        if not running:
            self._connected = False
            self._state = BackendState.DOWN
            if self._healthy_before:
                logger.error("ADB server connection lost...")
            logger.warning("Starting ADB server...")
            try:
                await self._bridge.start()
            except AdbError as exc:
                logger.error("failed to start ADB server: %s", exc)
                return
            self._launched_backend = True
            self._state = BackendState.STARTING

        if not self._connected:
            try:
                await self._bridge.connect()
            except AdbConnectionRefused:
                logger.error("Connection to ADB server failed!")
                raise
            except AdbError as exc:
                logger.error("ADB server connection error: %s", exc)
                self._state = BackendState.UP_DISCONNECTED
                return
            self._connected = True
            if self._healthy_before:
                logger.info("ADB server connection restored!")

        self._state = BackendState.UP_CONNECTED
        self._healthy_before = True
        if not self._tasks:
            self._subscribe()

    def _subscribe(self) -> None:
        self._tasks = [
            asyncio.create_task(self._monitor.run(), name="device-monitor"),
            asyncio.create_task(self._dispatcher.run(), name="device-dispatcher"),
        ]
        for task in self._tasks:
            task.add_done_callback(_log_task_exit)
        logger.info("Monitoring for devices...")

    async def _unsubscribe(self) -> None:
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._dispatcher.close()


def _log_task_exit(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("%s stopped: %s", task.get_name(), exc, exc_info=exc)
