"""Hierarchical exception types for alvr-usb."""

from __future__ import annotations


class AlvrUsbError(Exception):
    """Base exception for all alvr-usb errors."""


# ── ADB server ─────────────────────────────────────────────────


class AdbError(AlvrUsbError):
    """ADB server query or command error."""


class AdbConnectionError(AdbError):
    """ADB server control channel is unreachable."""


class AdbConnectionRefused(AdbConnectionError):
    """ADB server endpoint actively refused the connection."""


class AdbNotFoundError(AlvrUsbError):
    """No ADB executable in the local directory or on PATH."""


# ── Host ───────────────────────────────────────────────────────


class UnsupportedPlatformError(AlvrUsbError):
    """Host operating system is not supported."""


# ── Session side effects ───────────────────────────────────────


class LaunchError(AlvrUsbError):
    """Companion process could not be launched."""


class HookError(AlvrUsbError):
    """Hook command could not be started."""
