"""Device session state machine: one forwarded headset at a time."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from functools import partial

from alvrusb.bridge.interfaces import DeviceBridge
from alvrusb.session.debounce import RecentEventCache
from alvrusb.session.interfaces import ClientLauncher, ServerLauncher, SessionHook
from alvrusb.session.resolver import DeviceResolver
from alvrusb.session.slot import ActiveSession
from alvrusb.shared.enums import AdmitResult
from alvrusb.shared.exceptions import AdbError
from alvrusb.shared.models import DeviceRecord, utc_now

logger = logging.getLogger(__name__)

# The companion server and the headset client are hard-wired to these.
FORWARDED_PORTS: tuple[int, int] = (9943, 9944)

DEFAULT_ALLOWED_PRODUCTS: frozenset[str] = frozenset(
    {
        "monterey",  # Oculus Quest
        "vr_monterey",
        "hollywood",  # Oculus Quest 2
        "vr_hollywood",
        "pacific",  # Oculus Go
        "vr_pacific",
    }
)


def build_allow_list(extra: Iterable[str] = ()) -> frozenset[str]:
    """Built-in product tags plus ``extra``; extras never replace built-ins."""
    return DEFAULT_ALLOWED_PRODUCTS | {tag.strip() for tag in extra if tag.strip()}


class SessionStateMachine:
    """Own the single session slot and sequence its side effects.

    The first allow-listed device to attach gets the forwarded ports and
    keeps them until it detaches; any other device attaching meanwhile is
    rejected. Re-announcing the active device is a no-op.

    Slot reads and writes happen under one lock. Side effects (companion
    launches, hooks) run after the lock is released, each best-effort, and
    stop as soon as the session they were started for has been closed. A
    partially forwarded device has its installed forwards removed again.
    """

    def __init__(
        self,
        bridge: DeviceBridge,
        resolver: DeviceResolver,
        cache: RecentEventCache,
        *,
        allowed_products: frozenset[str] = DEFAULT_ALLOWED_PRODUCTS,
        server_launcher: ServerLauncher | None = None,
        client_launcher: ClientLauncher | None = None,
        connect_hook: SessionHook | None = None,
        disconnect_hook: SessionHook | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._bridge = bridge
        self._resolver = resolver
        self._cache = cache
        self._allowed = allowed_products
        self._server_launcher = server_launcher
        self._client_launcher = client_launcher
        self._connect_hook = connect_hook
        self._disconnect_hook = disconnect_hook
        self._clock = clock
        self._lock = asyncio.Lock()
        self._session: ActiveSession | None = None
        # Bumped on every detach so attaches resolved across a detach are dropped
        self._epochs: dict[str, int] = {}

    @property
    def session(self) -> ActiveSession | None:
        return self._session

    @property
    def allowed_products(self) -> frozenset[str]:
        return self._allowed

    @property
    def cache(self) -> RecentEventCache:
        return self._cache

    def attach_token(self, serial: str) -> int:
        """Capture the detach epoch of ``serial`` when its attach is dispatched."""
        return self._epochs.get(serial, 0)

    async def handle_attach(self, device: DeviceRecord, *, token: int | None = None) -> AdmitResult:
        """Resolve, admit and activate an attached device.

        Args:
            device: Record carried by the attach notification.
            token: Value of :meth:`attach_token` taken when the event was
                received; defaults to the current epoch.

        Returns:
            What happened to the device.
        """
        serial = device.serial
        if token is None:
            token = self.attach_token(serial)
        self._log_rate_limited(serial, "Connected device: %s", serial)

        resolved = await self._resolver.resolve(device)
        if resolved.product not in self._allowed:
            self._log_rate_limited(serial, "Skipped device: %s", resolved.label, level=logging.WARNING)
            self._cache.record(serial)
            return AdmitResult.REJECTED_PRODUCT

        async with self._lock:
            if self._epochs.get(serial, 0) != token:
                logger.info("device %s detached while resolving, ignoring attach", serial)
                return AdmitResult.STALE

            active = self._session
            if active is not None:
                if active.serial == serial:
                    logger.debug("device %s already owns the session", serial)
                    return AdmitResult.ALREADY_ACTIVE
                logger.warning("Ports already forwarded for device %s, skipping %s", active.serial, serial)
                return AdmitResult.REJECTED_CONFLICT

            installed: list[int] = []
            try:
                for port in FORWARDED_PORTS:
                    await self._bridge.create_forward(serial, port, port)
                    installed.append(port)
            except AdbError as exc:
                logger.error("failed to forward ports for device %s: %s", serial, exc)
                await self._remove_forwards(serial, installed)
                return AdmitResult.FORWARD_FAILED

            session = ActiveSession(device=resolved, forwarded_ports=FORWARDED_PORTS, opened_at=self._clock())
            self._session = session

        logger.info("Forwarded ports for device: %s (%s)", serial, resolved.product)
        await self._run_connect_effects(session)
        return AdmitResult.ADMITTED

    async def handle_detach(self, serial: str) -> bool:
        """Tear the session down if ``serial`` owns it.

        Returns:
            True if the session slot was cleared.
        """
        self._log_rate_limited(serial, "Disconnected device: %s", serial)
        self._cache.record(serial)

        async with self._lock:
            self._epochs[serial] = self._epochs.get(serial, 0) + 1
            active = self._session
            if active is None or active.serial != serial:
                return False
            self._session = None

        logger.info("Session closed for device %s", serial)
        if self._disconnect_hook is not None:
            await self._fire(self._disconnect_hook, active.device, "disconnect")
        return True

    async def close(self) -> None:
        """Release background work held by the configured hooks."""
        for hook in (self._connect_hook, self._disconnect_hook):
            if hook is not None:
                await hook.close()

    async def _remove_forwards(self, serial: str, ports: list[int]) -> None:
        for port in ports:
            try:
                await self._bridge.remove_forward(serial, port)
            except AdbError as exc:
                logger.warning("failed to remove forward tcp:%d for device %s: %s", port, serial, exc)

    async def _run_connect_effects(self, session: ActiveSession) -> None:
        """Run the connect side effects in order while ``session`` stays active.

        A detach may land while an effect is awaited; the remaining effects
        are skipped once the slot no longer holds ``session``.
        """
        device = session.device
        effects: list[tuple[str, Callable[[], Awaitable[object]]]] = []
        if self._server_launcher is not None:
            effects.append(("companion server launch", self._server_launcher.launch_if_needed))
        if self._client_launcher is not None:
            effects.append(("companion client launch", partial(self._client_launcher.launch_if_needed, device)))
        if self._connect_hook is not None:
            effects.append(("connect hook", partial(self._connect_hook.fire, device)))

        for name, effect in effects:
            async with self._lock:
                if self._session is not session:
                    logger.debug("session for %s closed, skipping %s", device.serial, name)
                    return
            try:
                await effect()
            except Exception as exc:
                logger.warning("%s for %s failed: %s", name, device.serial, exc)

    @staticmethod
    async def _fire(hook: SessionHook, device: DeviceRecord, event: str) -> None:
        try:
            await hook.fire(device)
        except Exception as exc:
            logger.warning("%s hook for %s failed: %s", event, device.serial, exc)

    def _log_rate_limited(self, serial: str, msg: str, *args: object, level: int = logging.INFO) -> None:
        logger.log(logging.DEBUG if self._cache.is_recent(serial) else level, msg, *args)
