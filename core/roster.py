"""
Debounced roster display refresh.

Mutations request a refresh; forced refreshes are at least MIN_REFRESH_INTERVAL
apart. A request that lands inside the window marks the roster dirty instead,
and the periodic roster job picks it up.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

import sentry_sdk

logger = logging.getLogger(__name__)


MIN_REFRESH_INTERVAL = 30.0  # seconds between forced refreshes
PERIODIC_REFRESH_INTERVAL = 120.0


class RosterRefresher:
    def __init__(
        self,
        refresh_fn: Callable[[], Awaitable[None]] | None = None,
        min_interval: float = MIN_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.refresh_fn = refresh_fn
        self.min_interval = min_interval
        self._clock = clock
        self._last_refresh: float | None = None
        self._pending: asyncio.Task | None = None
        self.dirty = False

    def set_refresh_fn(self, refresh_fn: Callable[[], Awaitable[None]]) -> None:
        self.refresh_fn = refresh_fn

    async def refresh(self) -> bool:
        """Refresh now, ignoring the debounce window."""
        if self.refresh_fn is None:
            return False
        try:
            await self.refresh_fn()
        except Exception as e:
            logger.error(f"Roster refresh failed: {e}")
            sentry_sdk.capture_exception(e)
            return False
        self._last_refresh = self._clock()
        self.dirty = False
        return True

    async def force_refresh(self) -> bool:
        """
        Refresh unless the last refresh was under ``min_interval`` ago.

        Returns:
            True if the roster was refreshed.
        """
        now = self._clock()
        if self._last_refresh is not None and now - self._last_refresh < self.min_interval:
            self.dirty = True
            logger.debug("Roster update skipped (too recent)")
            return False
        return await self.refresh()

    def request_refresh(self) -> None:
        """Fire-and-forget refresh for synchronous callers. Coalesces requests."""
        if self._pending is not None and not self._pending.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.dirty = True
            return
        self._pending = loop.create_task(self.force_refresh())

    async def periodic_refresh(self) -> None:
        """Scheduled job: refresh the roster on a fixed cadence."""
        await self.refresh()
