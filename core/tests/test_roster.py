"""Tests for the debounced roster refresher."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from core.roster import RosterRefresher


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestForceRefresh:
    @pytest.mark.asyncio
    async def test_first_refresh_runs(self):
        refresh_fn = AsyncMock()
        roster = RosterRefresher(refresh_fn, clock=FakeClock())

        assert await roster.force_refresh() is True
        refresh_fn.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_within_window_marks_dirty(self):
        refresh_fn = AsyncMock()
        clock = FakeClock()
        roster = RosterRefresher(refresh_fn, min_interval=30, clock=clock)
        await roster.force_refresh()

        clock.now += 10
        assert await roster.force_refresh() is False

        assert roster.dirty is True
        assert refresh_fn.await_count == 1

    @pytest.mark.asyncio
    async def test_refresh_after_window_runs(self):
        refresh_fn = AsyncMock()
        clock = FakeClock()
        roster = RosterRefresher(refresh_fn, min_interval=30, clock=clock)
        await roster.force_refresh()

        clock.now += 31
        assert await roster.force_refresh() is True
        assert refresh_fn.await_count == 2

    @pytest.mark.asyncio
    async def test_periodic_refresh_clears_dirty(self):
        refresh_fn = AsyncMock()
        clock = FakeClock()
        roster = RosterRefresher(refresh_fn, clock=clock)
        await roster.force_refresh()
        await roster.force_refresh()
        assert roster.dirty

        await roster.periodic_refresh()

        assert roster.dirty is False
        assert refresh_fn.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self):
        refresh_fn = AsyncMock(side_effect=RuntimeError("channel gone"))
        roster = RosterRefresher(refresh_fn, clock=FakeClock())

        with patch("core.roster.sentry_sdk") as mock_sentry:
            assert await roster.refresh() is False

        mock_sentry.capture_exception.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_refresh_fn(self):
        assert await RosterRefresher().force_refresh() is False


class TestRequestRefresh:
    @pytest.mark.asyncio
    async def test_coalesces_requests(self):
        refresh_fn = AsyncMock()
        roster = RosterRefresher(refresh_fn, clock=FakeClock())

        for _ in range(5):
            roster.request_refresh()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        refresh_fn.assert_awaited_once()

    def test_without_loop_marks_dirty(self):
        roster = RosterRefresher(AsyncMock(), clock=FakeClock())

        roster.request_refresh()

        assert roster.dirty is True
