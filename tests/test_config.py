"""Tests for Settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from alvrusb.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, settings: Settings) -> None:
        assert settings.adb_host == "127.0.0.1"
        assert settings.adb_port == 5037
        assert settings.debounce_window_seconds == 10.0
        assert settings.resolve_attempts == 5
        assert settings.extra_device_tags == ()

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ALVRUSB_ADB_PORT", "5555")
        monkeypatch.setenv("ALVRUSB_DEBUG", "1")

        settings = get_settings()

        assert settings.adb_port == 5555
        assert settings.debug is True

    def test_config_file(self, tmp_path: Path) -> None:
        config = tmp_path / "alvr-usb.conf"
        config.write_text(
            "# local overrides\n"
            "ALVRUSB_ALVR_PATH=C:/ALVR/ALVR Launcher.exe\n"
            "ALVRUSB_CONNECT_HOOK=notify-send connected\n"
            "ALVRUSB_UNKNOWN_KEY=ignored\n"
        )

        settings = get_settings(str(config))

        assert settings.alvr_path == "C:/ALVR/ALVR Launcher.exe"
        assert settings.connect_hook == "notify-send connected"

    def test_env_wins_over_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config = tmp_path / "alvr-usb.conf"
        config.write_text("ALVRUSB_ADB_PORT=5038\n")
        monkeypatch.setenv("ALVRUSB_ADB_PORT", "5039")

        assert get_settings(str(config)).adb_port == 5039

    def test_extra_device_tags(self) -> None:
        settings = Settings(_env_file=None, extra_devices=" eureka, ,seacliff ")  # type: ignore[call-arg]
        assert settings.extra_device_tags == ("eureka", "seacliff")

    def test_frozen(self, settings: Settings) -> None:
        with pytest.raises(ValueError):
            settings.debug = True  # type: ignore[misc]
