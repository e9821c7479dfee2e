"""Tests for RecentEventCache."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from alvrusb.session.debounce import RecentEventCache

if TYPE_CHECKING:
    from tests.conftest import FakeClock


@pytest.fixture
def cache(clock: FakeClock) -> RecentEventCache:
    return RecentEventCache(10.0, clock=clock)


class TestRecentEventCache:
    def test_unknown_serial_is_not_recent(self, cache: RecentEventCache) -> None:
        assert cache.is_recent("ABC123") is False

    def test_recent_within_window(self, cache: RecentEventCache, clock: FakeClock) -> None:
        cache.record("ABC123")
        assert cache.is_recent("ABC123") is True
        clock.advance(9.999)
        assert cache.is_recent("ABC123") is True

    def test_expires_at_window_boundary(self, cache: RecentEventCache, clock: FakeClock) -> None:
        cache.record("ABC123")
        clock.advance(10.0)
        assert cache.is_recent("ABC123") is False

    def test_record_refreshes_timestamp(self, cache: RecentEventCache, clock: FakeClock) -> None:
        cache.record("ABC123")
        clock.advance(8)
        cache.record("ABC123")
        clock.advance(8)
        assert cache.is_recent("ABC123") is True

    def test_sweep_removes_only_expired(self, cache: RecentEventCache, clock: FakeClock) -> None:
        cache.record("old")
        clock.advance(6)
        cache.record("new")
        clock.advance(5)

        removed = cache.sweep()

        assert removed == 1
        assert len(cache) == 1
        assert cache.is_recent("new") is True
        assert cache.is_recent("old") is False
