"""Tests for frozen Pydantic domain models."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from alvrusb.shared.enums import DeviceEventKind
from alvrusb.shared.models import DeviceEvent, DeviceRecord, utc_now


class TestDeviceRecord:
    def test_create_with_defaults(self) -> None:
        device = DeviceRecord(serial="ABC123")
        assert device.state == ""
        assert device.product == ""
        assert device.transport_id is None
        assert not device.is_online

    def test_online(self, quest2: DeviceRecord) -> None:
        assert quest2.is_online

    def test_label_prefers_product(self, quest2: DeviceRecord, unannounced: DeviceRecord) -> None:
        assert quest2.label == "hollywood"
        assert unannounced.label == "XYZ999"

    def test_frozen_raises_on_mutation(self, quest2: DeviceRecord) -> None:
        with pytest.raises(ValidationError):
            quest2.product = "monterey"  # type: ignore[misc]

    def test_model_copy_returns_new_instance(self, unannounced: DeviceRecord) -> None:
        updated = unannounced.model_copy(update={"state": "device", "product": "hollywood"})
        assert updated.is_online
        assert unannounced.state == "unauthorized"

    def test_equality_by_value(self) -> None:
        assert DeviceRecord(serial="A", product="p") == DeviceRecord(serial="A", product="p")


class TestDeviceEvent:
    def test_kind_from_string(self, quest2: DeviceRecord) -> None:
        event = DeviceEvent(kind="attached", device=quest2)  # type: ignore[arg-type]
        assert event.kind is DeviceEventKind.ATTACHED

    def test_frozen(self, quest2: DeviceRecord) -> None:
        event = DeviceEvent(kind=DeviceEventKind.DETACHED, device=quest2)
        with pytest.raises(ValidationError):
            event.kind = DeviceEventKind.ATTACHED  # type: ignore[misc]


def test_utc_now_is_aware() -> None:
    now = utc_now()
    assert isinstance(now, datetime)
    assert now.utcoffset() == timedelta(0)
