"""Frozen Pydantic domain models shared by all modules."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel

from alvrusb.shared.enums import DeviceEventKind


def utc_now() -> datetime:
    """Return timezone-aware UTC timestamps for model defaults."""
    return datetime.now(timezone.utc)


class DeviceRecord(BaseModel):
    """A device as reported by the ADB server.

    ``product`` may be empty while the device is still being enumerated
    (``offline``/``unauthorized``); richer metadata arrives as a new record.
    """

    model_config = {"frozen": True}

    serial: str
    state: str = ""
    product: str = ""
    display_name: str = ""
    model_name: str = ""
    transport_id: int | None = None

    @property
    def is_online(self) -> bool:
        return self.state == "device"

    @property
    def label(self) -> str:
        """Product tag if known, otherwise the serial."""
        return self.product or self.serial


class DeviceEvent(BaseModel):
    """An attach/detach notification carried by the event channel."""

    model_config = {"frozen": True}

    kind: DeviceEventKind
    device: DeviceRecord
