"""Time-windowed memory of recent device events, used to rate-limit logs."""

from __future__ import annotations

import time
from collections.abc import Callable

DEFAULT_WINDOW_SECONDS = 10.0


class RecentEventCache:
    """Remember serials seen within the last ``window`` seconds.

    Only log verbosity depends on this cache; it never gates a state
    transition.
    """

    def __init__(
        self,
        window: float = DEFAULT_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = window
        self._clock = clock
        self._seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._seen)

    def record(self, serial: str) -> None:
        self._seen[serial] = self._clock()

    def is_recent(self, serial: str) -> bool:
        """True for ``[recorded, recorded + window)``."""
        stamp = self._seen.get(serial)
        if stamp is None:
            return False
        return self._clock() - stamp < self._window

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [serial for serial, stamp in self._seen.items() if now - stamp >= self._window]
        for serial in expired:
            del self._seen[serial]
        return len(expired)
