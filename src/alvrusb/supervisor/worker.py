"""Process entry point: wire settings into the supervisor and run it."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path

from alvrusb import __version__
from alvrusb.bridge.adb import AdbClient
from alvrusb.bridge.interfaces import DeviceBridge
from alvrusb.bridge.locate import find_adb
from alvrusb.bridge.monitor import DeviceMonitor
from alvrusb.config import Settings, get_settings
from alvrusb.logging_config import configure_logging
from alvrusb.session.debounce import RecentEventCache
from alvrusb.session.hooks import ShellHook
from alvrusb.session.launcher import CompanionClientLauncher, CompanionServerLauncher
from alvrusb.session.machine import SessionStateMachine, build_allow_list
from alvrusb.session.resolver import DeviceResolver
from alvrusb.shared.exceptions import AdbConnectionRefused, AdbError, AdbNotFoundError, UnsupportedPlatformError
from alvrusb.shared.models import DeviceEvent
from alvrusb.supervisor.dispatcher import DeviceEventDispatcher
from alvrusb.supervisor.loop import BackendSupervisor

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("win32", "linux", "darwin")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="alvr-usb",
        description="Forward ALVR ports to a USB-attached headset and keep the ADB server alive.",
    )
    parser.add_argument("--debug", action="store_true", help="verbose diagnostic logging")
    parser.add_argument("--log", action="store_true", help="append log lines to the log file")
    parser.add_argument("--log-truncate", action="store_true", help="empty the log file on start")
    parser.add_argument("--config", metavar="PATH", help="KEY=value settings file (default: ./alvr-usb.conf)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Load settings and apply command-line overrides."""
    settings = get_settings(args.config)
    updates: dict[str, bool] = {}
    if args.debug:
        updates["debug"] = True
    if args.log:
        updates["log_enabled"] = True
    if args.log_truncate:
        updates["log_truncate"] = True
    return settings.model_copy(update=updates) if updates else settings


def check_platform(platform: str = sys.platform) -> None:
    if platform not in SUPPORTED_PLATFORMS:
        raise UnsupportedPlatformError("Unsupported platform!")


def _resolve(base_dir: Path, raw: str) -> Path:
    path = Path(raw).expanduser()
    return path if path.is_absolute() else base_dir / path


def build_machine(settings: Settings, bridge: DeviceBridge, cache: RecentEventCache, *, base_dir: Path) -> SessionStateMachine:
    """Build the state machine and whichever side effects are configured."""
    server_launcher: CompanionServerLauncher | None = None
    alvr_path = _resolve(base_dir, settings.alvr_path) if settings.alvr_path else None
    if alvr_path is not None and alvr_path.is_file():
        logger.debug("ALVR Launcher found: %s", alvr_path)
        server_launcher = CompanionServerLauncher(alvr_path)
    else:
        logger.debug("ALVR Launcher not found")

    client_launcher: CompanionClientLauncher | None = None
    if settings.client_activity:
        try:
            client_launcher = CompanionClientLauncher(bridge, settings.client_activity)
        except ValueError as exc:
            logger.error("client launch disabled: %s", exc)

    hook_dir = _resolve(base_dir, settings.hook_working_dir) if settings.hook_working_dir else base_dir
    connect_hook = ShellHook(settings.connect_hook, event="connect", working_dir=hook_dir) if settings.connect_hook else None
    disconnect_hook = (
        ShellHook(settings.disconnect_hook, event="disconnect", working_dir=hook_dir)
        if settings.disconnect_hook
        else None
    )

    resolver = DeviceResolver(
        bridge,
        attempts=settings.resolve_attempts,
        interval=settings.resolve_interval_seconds,
    )
    return SessionStateMachine(
        bridge,
        resolver,
        cache,
        allowed_products=build_allow_list(settings.extra_device_tags),
        server_launcher=server_launcher,
        client_launcher=client_launcher,
        connect_hook=connect_hook,
        disconnect_hook=disconnect_hook,
    )


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    signals = [signal.SIGINT, signal.SIGTERM]
    if hasattr(signal, "SIGBREAK"):  # console close on Windows
        signals.append(signal.SIGBREAK)
    for sig in signals:
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))


async def run_from_settings(
    settings: Settings,
    *,
    adb_path: Path,
    base_dir: Path | None = None,
    bridge: DeviceBridge | None = None,
    stop_event: asyncio.Event | None = None,
    handle_signals: bool = True,
) -> int:
    """Wire dependencies from settings and supervise until stopped.

    Returns:
        Process exit status: 0 after a requested stop, 1 after a fatal
        connection failure.
    """
    base_dir = base_dir or Path.cwd()
    if bridge is None:
        bridge = AdbClient(
            adb_bin=str(adb_path),
            host=settings.adb_host,
            port=settings.adb_port,
            timeout=settings.adb_timeout_seconds,
        )
    cache = RecentEventCache(settings.debounce_window_seconds)
    machine = build_machine(settings, bridge, cache, base_dir=base_dir)
    events: asyncio.Queue[DeviceEvent] = asyncio.Queue()
    supervisor = BackendSupervisor(
        bridge,
        DeviceMonitor(bridge, events),
        DeviceEventDispatcher(machine, events),
        cache,
        tick_interval=settings.tick_interval_seconds,
    )

    stop_event = stop_event or asyncio.Event()
    if handle_signals:
        _install_signal_handlers(stop_event)

    try:
        await supervisor.run(stop_event)
    except AdbConnectionRefused:
        return 1
    finally:
        await machine.close()

    if supervisor.launched_backend:
        logger.warning("Killing ADB server...")
        try:
            await bridge.kill()
        except AdbError as exc:
            logger.error("failed to stop ADB server: %s", exc)
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for ``alvr-usb`` / ``python -m alvrusb``."""
    args = parse_args(argv)
    settings = settings_from_args(args)
    base_dir = Path.cwd()

    log_file = _resolve(base_dir, settings.log_file) if settings.log_enabled else None
    configure_logging(debug=settings.debug, log_file=log_file, truncate=settings.log_truncate)
    logger.debug("Logging is %s", "enabled" if log_file is not None else "disabled")

    try:
        check_platform()
        adb_path = find_adb(settings.adb_path, base_dir=base_dir)
    except (UnsupportedPlatformError, AdbNotFoundError) as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc

    logger.info("Initialized alvr-usb, version %s", __version__)
    raise SystemExit(asyncio.run(run_from_settings(settings, adb_path=adb_path, base_dir=base_dir)))


if __name__ == "__main__":
    main()
