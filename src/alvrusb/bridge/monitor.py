"""Turn the server's device-tracking stream into attach/detach events."""

from __future__ import annotations

import asyncio
import logging

from alvrusb.bridge.interfaces import DeviceBridge
from alvrusb.shared.enums import DeviceEventKind
from alvrusb.shared.exceptions import AdbError
from alvrusb.shared.models import DeviceEvent, DeviceRecord

logger = logging.getLogger(__name__)


class DeviceMonitor:
    """Diff successive device lists and publish changes onto one queue.

    A serial that appears emits ``ATTACHED``; one that disappears emits
    ``DETACHED``. A known serial whose state turns ``device`` (e.g. after the
    user accepts the USB debugging prompt) is announced again as
    ``ATTACHED`` so its product tag can be picked up, and an online serial
    that drops to any other state emits ``DETACHED``.

    The tracking stream is reopened after ``reconnect_delay`` whenever it
    drops; callers start the monitor once. Every known serial is detached
    when the stream is lost; the next stream announces the devices afresh.
    """

    def __init__(
        self,
        bridge: DeviceBridge,
        events: asyncio.Queue[DeviceEvent],
        *,
        reconnect_delay: float = 1.0,
    ) -> None:
        self._bridge = bridge
        self._events = events
        self._reconnect_delay = reconnect_delay
        self._known: dict[str, DeviceRecord] = {}

    @property
    def known_devices(self) -> dict[str, DeviceRecord]:
        return dict(self._known)

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Follow the tracking stream until ``stop_event`` is set or cancelled."""
        while stop_event is None or not stop_event.is_set():
            try:
                async for devices in self._bridge.track_devices():
                    self.apply(devices)
                logger.debug("device tracking stream ended")
            except AdbError as exc:
                logger.debug("device tracking interrupted: %s", exc)
            self.apply([])
            await asyncio.sleep(self._reconnect_delay)

    def apply(self, devices: list[DeviceRecord]) -> list[DeviceEvent]:
        """Diff ``devices`` against the last snapshot and queue the changes."""
        current = {device.serial: device for device in devices}
        emitted: list[DeviceEvent] = []

        for serial, device in current.items():
            previous = self._known.get(serial)
            if previous is None or (device.is_online and not previous.is_online):
                emitted.append(DeviceEvent(kind=DeviceEventKind.ATTACHED, device=device))

        for serial, device in self._known.items():
            now = current.get(serial)
            if now is None:
                emitted.append(DeviceEvent(kind=DeviceEventKind.DETACHED, device=device))
            elif device.is_online and not now.is_online:
                emitted.append(DeviceEvent(kind=DeviceEventKind.DETACHED, device=now))

        self._known = current
        for event in emitted:
            logger.debug("device %s %s (state=%s)", event.device.serial, event.kind.value, event.device.state)
            self._events.put_nowait(event)
        return emitted
