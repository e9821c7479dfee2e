"""Domain enumerations used across all modules."""

from __future__ import annotations

from enum import Enum, unique


@unique
class BackendState(str, Enum):
    """Supervisor view of the ADB server and its control channel."""

    UNKNOWN = "unknown"
    DOWN = "down"
    STARTING = "starting"
    UP_DISCONNECTED = "up_disconnected"
    UP_CONNECTED = "up_connected"


@unique
class DeviceEventKind(str, Enum):
    """Notifications emitted by the device monitor."""

    ATTACHED = "attached"
    DETACHED = "detached"


@unique
class AdmitResult(str, Enum):
    """Outcome of handling one attach notification."""

    ADMITTED = "admitted"
    ALREADY_ACTIVE = "already_active"
    REJECTED_PRODUCT = "rejected_product"
    REJECTED_CONFLICT = "rejected_conflict"
    STALE = "stale"
    FORWARD_FAILED = "forward_failed"
