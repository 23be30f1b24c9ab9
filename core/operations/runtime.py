"""
Wires the operations components together for one process.

main.py builds the runtime at startup; the Discord cogs and web routes reach
it through get_runtime().
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Awaitable, Callable

from core.notifications.fanout import NotificationFanout
from core.notifications.scheduler import ReminderScheduler, create_scheduler
from core.roster import PERIODIC_REFRESH_INTERVAL, RosterRefresher

from .assignments import AssignmentEngine
from .platform import Platform
from .registry import OperationRegistry
from .service import OperationService
from .store import DurableStore

logger = logging.getLogger(__name__)


PURGE_INTERVAL = timedelta(hours=1)
ROSTER_JOB_ID = "roster_refresh"
PURGE_JOB_ID = "purge_scheduled_operations"


@dataclass
class OperationsRuntime:
    registry: OperationRegistry
    reminders: ReminderScheduler
    roster: RosterRefresher
    service: OperationService

    def start(self) -> None:
        """Load persisted operations, start timers and re-arm reminders."""
        self.registry.load()
        scheduler = self.reminders.scheduler
        scheduler.add_job(
            self.roster.periodic_refresh,
            trigger="interval",
            seconds=PERIODIC_REFRESH_INTERVAL,
            id=ROSTER_JOB_ID,
            replace_existing=True,
        )
        scheduler.add_job(
            self.service.purge_expired,
            trigger="interval",
            seconds=PURGE_INTERVAL.total_seconds(),
            id=PURGE_JOB_ID,
            replace_existing=True,
        )
        self.reminders.start()
        self.reminders.on_startup()

    def shutdown(self) -> None:
        self.reminders.shutdown()
        self.registry.save()


def build_runtime(
    data_dir: Path | str,
    platform: Platform,
    reminder_hours: list[float] | None = None,
    sleep: Callable[[float], Awaitable] = asyncio.sleep,
) -> OperationsRuntime:
    registry = OperationRegistry(DurableStore(data_dir))
    roster = RosterRefresher()
    engine = AssignmentEngine(registry, roster=roster)
    fanout = NotificationFanout(platform.send_dm, sleep=sleep)
    reminders = ReminderScheduler(registry, fanout, scheduler=create_scheduler())
    service = OperationService(
        registry,
        engine,
        reminders,
        fanout,
        roster,
        platform,
        default_reminder_hours=reminder_hours,
    )
    return OperationsRuntime(
        registry=registry, reminders=reminders, roster=roster, service=service
    )


_runtime: OperationsRuntime | None = None


def set_runtime(runtime: OperationsRuntime | None) -> None:
    """Set the process-wide runtime. Called by main.py on startup."""
    global _runtime
    _runtime = runtime


def get_runtime() -> OperationsRuntime | None:
    return _runtime


def get_service() -> OperationService:
    if _runtime is None:
        raise RuntimeError("Operations runtime not initialized")
    return _runtime.service
