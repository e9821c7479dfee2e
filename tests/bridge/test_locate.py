"""Tests for ADB executable lookup."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import adbutils
import pytest

from alvrusb.bridge.locate import adb_executable_name, find_adb
from alvrusb.shared.exceptions import AdbNotFoundError


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")
    return path


class TestFindAdb:
    def test_executable_name(self) -> None:
        assert adb_executable_name("win32") == "adb.exe"
        assert adb_executable_name("linux") == "adb"
        assert adb_executable_name("darwin") == "adb"

    def test_configured_relative_path(self, tmp_path: Path) -> None:
        expected = _touch(tmp_path / "tools" / "adb")

        assert find_adb("tools/adb", base_dir=tmp_path, platform="linux") == expected

    def test_local_directory(self, tmp_path: Path) -> None:
        expected = _touch(tmp_path / "adb" / "adb.exe")

        with patch("adbutils.adb_path", return_value="/usr/bin/adb"):
            assert find_adb(base_dir=tmp_path, platform="win32") == expected

    def test_missing_configured_falls_back(self, tmp_path: Path) -> None:
        expected = _touch(tmp_path / "adb" / "adb")

        assert find_adb("nope/adb", base_dir=tmp_path, platform="linux") == expected

    def test_global_path(self, tmp_path: Path) -> None:
        with patch("adbutils.adb_path", return_value="/usr/bin/adb") as adb_path:
            assert find_adb(base_dir=tmp_path, platform="linux") == Path("/usr/bin/adb")
        adb_path.assert_called_once_with()

    def test_not_found(self, tmp_path: Path) -> None:
        with patch("adbutils.adb_path", side_effect=adbutils.AdbError("No adb exe could be found")):
            with pytest.raises(AdbNotFoundError, match="ADB executable not found!"):
                find_adb(base_dir=tmp_path, platform="linux")
