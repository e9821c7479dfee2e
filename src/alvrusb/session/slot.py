"""The single privileged session slot."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from alvrusb.shared.models import DeviceRecord


@dataclass(frozen=True, slots=True)
class ActiveSession:
    """The one device currently served, and what was set up for it."""

    device: DeviceRecord
    forwarded_ports: tuple[int, int]
    opened_at: datetime

    @property
    def serial(self) -> str:
        return self.device.serial
