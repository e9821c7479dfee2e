"""Centralised configuration via Pydantic Settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings

DEFAULT_CONFIG_FILE = "alvr-usb.conf"


class Settings(BaseSettings):
    """Application-wide configuration.

    Loaded from ``ALVRUSB_*`` environment variables and a flat ``KEY=value``
    file; keys absent from both keep the defaults below.
    """

    model_config = {"env_prefix": "ALVRUSB_", "env_file": DEFAULT_CONFIG_FILE, "extra": "ignore", "frozen": True}

    # Logging
    debug: bool = False
    log_enabled: bool = False
    log_file: str = "alvr-usb.log"
    log_truncate: bool = False

    # ADB server
    # Empty: look for ./adb/adb[.exe] first, then search PATH.
    adb_path: str = ""
    adb_host: str = "127.0.0.1"
    adb_port: int = 5037
    adb_timeout_seconds: int = 10

    # Companion applications
    alvr_path: str = "ALVR Launcher.exe"
    # Format: "package/activity", e.g. "alvr.client.quest/com.polygraphene.alvr.OvrActivity"
    client_activity: str = ""

    # Hooks
    connect_hook: str = ""
    disconnect_hook: str = ""
    hook_working_dir: str = ""

    # Allow-list additions, comma separated product tags
    extra_devices: str = ""

    # Timing
    tick_interval_seconds: float = 0.1
    debounce_window_seconds: float = 10.0
    resolve_attempts: int = 5
    resolve_interval_seconds: float = 1.0

    @property
    def extra_device_tags(self) -> tuple[str, ...]:
        return tuple(tag.strip() for tag in self.extra_devices.split(",") if tag.strip())


def get_settings(config_file: str | None = None) -> Settings:
    """Build settings, optionally from an explicit config file."""
    if config_file is None:
        return Settings()
    return Settings(_env_file=config_file)  # type: ignore[call-arg]
