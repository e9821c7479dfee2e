"""Locate the ADB executable."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import adbutils

from alvrusb.shared.exceptions import AdbNotFoundError

logger = logging.getLogger(__name__)


def adb_executable_name(platform: str = sys.platform) -> str:
    return "adb.exe" if platform == "win32" else "adb"


def find_adb(configured: str = "", *, base_dir: Path | None = None, platform: str = sys.platform) -> Path:
    """Resolve the ADB executable to use.

    Order: the configured path, ``<base_dir>/adb/<adb executable>``, then
    whatever ``adbutils.adb_path`` picks (``ADBUTILS_ADB_PATH``, ``PATH`` or
    the binary bundled with adbutils).

    Raises:
        AdbNotFoundError: If no candidate exists.
    """
    base_dir = base_dir or Path.cwd()
    name = adb_executable_name(platform)

    if configured:
        candidate = Path(configured).expanduser()
        if not candidate.is_absolute():
            candidate = base_dir / candidate
        if candidate.is_file():
            logger.debug("ADB executable configured: %s", candidate)
            return candidate
        logger.warning("configured ADB executable %s does not exist, searching", candidate)

    local = base_dir / "adb" / name
    if local.is_file():
        logger.debug("ADB executable found in local directory: %s", local)
        return local

    try:
        found = adbutils.adb_path()
    except adbutils.AdbError as exc:
        raise AdbNotFoundError("ADB executable not found!") from exc
    logger.debug("ADB executable found in global path: %s", found)
    return Path(found)
