"""Tests for companion server/client launchers."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from alvrusb.session.launcher import CompanionClientLauncher, CompanionServerLauncher
from alvrusb.shared.exceptions import LaunchError
from alvrusb.shared.models import DeviceRecord

ACTIVITY = "alvr.client.quest/com.polygraphene.alvr.OvrActivity"


def _processes(*names: str | None) -> MagicMock:
    return MagicMock(return_value=[SimpleNamespace(info={"name": name}) for name in names])


@pytest.fixture
def launcher_path(tmp_path: Path) -> Path:
    path = tmp_path / "ALVR Launcher.exe"
    path.write_bytes(b"")
    return path


class TestCompanionServerLauncher:
    async def test_launches_when_nothing_runs(self, launcher_path: Path) -> None:
        popen = MagicMock()
        launcher = CompanionServerLauncher(launcher_path, process_iter=_processes("explorer.exe", None), popen=popen)

        launched = await launcher.launch_if_needed()

        assert launched is True
        popen.assert_called_once()
        args, kwargs = popen.call_args
        assert args[0] == [str(launcher_path)]
        assert kwargs["cwd"] == str(launcher_path.parent)

    @pytest.mark.parametrize("running", ["vrmonitor.exe", "VRMonitor", "ALVR Launcher.exe", "alvr launcher"])
    async def test_skips_when_instance_runs(self, launcher_path: Path, running: str) -> None:
        popen = MagicMock()
        launcher = CompanionServerLauncher(launcher_path, process_iter=_processes("svchost.exe", running), popen=popen)

        launched = await launcher.launch_if_needed()

        assert launched is False
        popen.assert_not_called()

    async def test_spawn_failure_raises_launch_error(self, launcher_path: Path) -> None:
        popen = MagicMock(side_effect=PermissionError("denied"))
        launcher = CompanionServerLauncher(launcher_path, process_iter=_processes(), popen=popen)

        with pytest.raises(LaunchError, match="failed to launch"):
            await launcher.launch_if_needed()

    def test_running_instance_asks_only_for_names(self, launcher_path: Path) -> None:
        process_iter = _processes("vrmonitor")
        launcher = CompanionServerLauncher(launcher_path, process_iter=process_iter)

        assert launcher.running_instance() == "vrmonitor"
        process_iter.assert_called_once_with(["name"])


@pytest.fixture
def shell_replies() -> dict[str, str]:
    return {
        "pm list packages alvr.client.quest": "package:alvr.client.quest",
        "pidof alvr.client.quest": "",
        f"am start -n {ACTIVITY}": "Starting: Intent { cmp=alvr.client.quest/com.polygraphene.alvr.OvrActivity }",
    }


@pytest.fixture
def bridge(shell_replies: dict[str, str]) -> AsyncMock:
    mock = AsyncMock()

    async def _shell(serial: str, command: str) -> Any:
        return shell_replies[command]

    mock.shell.side_effect = _shell
    return mock


class TestCompanionClientLauncher:
    def test_rejects_malformed_activity(self, bridge: AsyncMock) -> None:
        with pytest.raises(ValueError, match="package/activity"):
            CompanionClientLauncher(bridge, "just.a.package")

    async def test_launches_installed_idle_client(self, bridge: AsyncMock, quest2: DeviceRecord) -> None:
        launcher = CompanionClientLauncher(bridge, ACTIVITY)

        launched = await launcher.launch_if_needed(quest2)

        assert launched is True
        commands = [c.args[1] for c in bridge.shell.await_args_list]
        assert commands == [
            "pm list packages alvr.client.quest",
            "pidof alvr.client.quest",
            f"am start -n {ACTIVITY}",
        ]
        assert all(c.args[0] == "ABC123" for c in bridge.shell.await_args_list)

    async def test_not_installed(self, bridge: AsyncMock, shell_replies: dict[str, str], quest2: DeviceRecord) -> None:
        shell_replies["pm list packages alvr.client.quest"] = "package:alvr.client.quest.dev"
        launcher = CompanionClientLauncher(bridge, ACTIVITY)

        assert await launcher.launch_if_needed(quest2) is False
        assert bridge.shell.await_count == 1

    async def test_already_running(self, bridge: AsyncMock, shell_replies: dict[str, str], quest2: DeviceRecord) -> None:
        shell_replies["pidof alvr.client.quest"] = "12345"
        launcher = CompanionClientLauncher(bridge, ACTIVITY)

        assert await launcher.launch_if_needed(quest2) is False
        assert bridge.shell.await_count == 2

    async def test_am_error_raises(self, bridge: AsyncMock, shell_replies: dict[str, str], quest2: DeviceRecord) -> None:
        shell_replies[f"am start -n {ACTIVITY}"] = "Error: Activity class does not exist."
        launcher = CompanionClientLauncher(bridge, ACTIVITY)

        with pytest.raises(LaunchError, match="failed to start"):
            await launcher.launch_if_needed(quest2)
