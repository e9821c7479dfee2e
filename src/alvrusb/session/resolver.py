"""Resolve attach notifications into device records with a product tag."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from alvrusb.bridge.interfaces import DeviceBridge
from alvrusb.shared.exceptions import AdbError
from alvrusb.shared.models import DeviceRecord

logger = logging.getLogger(__name__)


class DeviceResolver:
    """Re-list devices until the attached one reports its product tag.

    Attach notifications often arrive while the device is still
    ``offline``/``unauthorized`` and carry no product. The resolver waits
    ``interval`` seconds, re-lists, and adopts the matching record, up to
    ``attempts`` rounds. It never raises for an unresolved device: the last
    record seen is returned with an empty product.
    """

    def __init__(
        self,
        bridge: DeviceBridge,
        *,
        attempts: int = 5,
        interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._bridge = bridge
        self._attempts = attempts
        self._interval = interval
        self._sleep = sleep

    async def resolve(self, device: DeviceRecord) -> DeviceRecord:
        if device.product:
            return device

        current = device
        for attempt in range(1, self._attempts + 1):
            await self._sleep(self._interval)
            try:
                devices = await self._bridge.list_devices()
            except AdbError as exc:
                logger.debug("resolve %s attempt %d/%d: %s", device.serial, attempt, self._attempts, exc)
                continue

            match = next((d for d in devices if d.serial == device.serial), None)
            if match is not None:
                current = match
            logger.debug(
                "resolve %s attempt %d/%d: product=%r model=%r",
                device.serial,
                attempt,
                self._attempts,
                current.product,
                current.model_name,
            )
            if current.product:
                return current

        logger.debug("device %s still has no product after %d attempts", device.serial, self._attempts)
        return current
