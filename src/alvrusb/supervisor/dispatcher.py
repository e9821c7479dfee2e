"""Single consumer of the device event channel."""

from __future__ import annotations

import asyncio
import logging

from alvrusb.session.machine import SessionStateMachine
from alvrusb.shared.enums import AdmitResult, DeviceEventKind
from alvrusb.shared.models import DeviceEvent

logger = logging.getLogger(__name__)


class DeviceEventDispatcher:
    """Feed attach/detach events into the session state machine in order.

    Detach events are handled inline. Each attach gets its own task, since
    identity resolution may wait several seconds; the attach's detach epoch
    is captured here, before any later detach in the queue is consumed.
    """

    def __init__(self, machine: SessionStateMachine, events: asyncio.Queue[DeviceEvent]) -> None:
        self._machine = machine
        self._events = events
        self._pending: set[asyncio.Task[AdmitResult]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Consume events until ``stop_event`` is set or cancelled."""
        while stop_event is None or not stop_event.is_set():
            event = await self._events.get()
            try:
                await self.dispatch(event)
            finally:
                self._events.task_done()

    async def dispatch(self, event: DeviceEvent) -> None:
        serial = event.device.serial
        if event.kind == DeviceEventKind.DETACHED:
            await self._machine.handle_detach(serial)
            return

        token = self._machine.attach_token(serial)
        task = asyncio.create_task(
            self._machine.handle_attach(event.device, token=token),
            name=f"attach-{serial}",
        )
        self._pending.add(task)
        task.add_done_callback(self._attach_done)

    async def drain(self) -> None:
        """Wait for every in-flight attach to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def close(self) -> None:
        """Cancel in-flight attaches."""
        for task in self._pending:
            task.cancel()
        await self.drain()

    def _attach_done(self, task: asyncio.Task[AdmitResult]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s failed: %s", task.get_name(), exc, exc_info=exc)
            return
        logger.debug("%s: %s", task.get_name(), task.result().value)
