"""Print ADB server version and attached devices, flagging allow-listed ones."""

import asyncio

from alvrusb.bridge.adb import AdbClient
from alvrusb.config import get_settings
from alvrusb.session.machine import build_allow_list
from alvrusb.shared.exceptions import AdbConnectionRefused, AdbError


async def main() -> None:
    settings = get_settings()
    client = AdbClient(host=settings.adb_host, port=settings.adb_port, timeout=settings.adb_timeout_seconds)
    allowed = build_allow_list(settings.extra_device_tags)
    print(f"Checking ADB server at: {client.endpoint}")

    try:
        status = await client.get_status()
        if not status.running:
            print("ADB server is not running")
            return
        print(f"Server version: {status.version}")
        devices = await client.list_devices()
    except AdbConnectionRefused:
        print("CONNECTION REFUSED")
        return
    except AdbError as e:
        print(f"ERROR: {e}")
        return

    if not devices:
        print("No devices attached")
    for device in devices:
        flag = "allowed" if device.product in allowed else "skipped"
        print(f" - {device.serial} [{device.state}] product={device.product or '?'} model={device.model_name or '?'} ({flag})")


if __name__ == "__main__":
    asyncio.run(main())
