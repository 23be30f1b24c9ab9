"""
APScheduler-based reminder scheduling for operations.

Jobs live in memory only. Restart safety comes from the operation records:
each one carries its reminder lead times and the lead times already fired,
and ``on_startup`` re-arms everything still in the future from that state.

Two mechanisms deliver reminders:
- single-shot date jobs, created only for instants within MAX_TIMER_DELAY;
- a recheck job every RECHECK_INTERVAL that arms reminders as they come
  within that horizon and fires any that are due but were missed.

Reminders whose instant was already past when the operation was armed are
never sent (no backfill).
"""

import fnmatch
import logging
from datetime import datetime, timedelta, timezone

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from core.operations.registry import OperationRegistry, validate_lead_hours
from core.operations.types import Operation

from .fanout import FanoutResult, NotificationFanout
from .templates import format_lead_time, format_start_time, get_message

logger = logging.getLogger(__name__)


# Longest delay we hand to a single-shot timer
MAX_TIMER_DELAY = timedelta(days=24)
RECHECK_INTERVAL = timedelta(minutes=5)
RECHECK_JOB_ID = "reminder_recheck"

UNASSIGNED_LABEL = "Confirmed Attendee"


# =============================================================================
# Scheduler initialization and shutdown
# =============================================================================


def create_scheduler() -> AsyncIOScheduler:
    """Create the in-memory AsyncIOScheduler used for every timed job."""
    return AsyncIOScheduler(
        job_defaults={
            "coalesce": True,  # Combine missed runs into one
            "max_instances": 1,
            "misfire_grace_time": 3600,  # Allow 1 hour late execution
        },
        timezone=timezone.utc,
    )


def reminder_job_id(operation_id: str, lead_hours: float) -> str:
    return f"{operation_id}_reminder_{lead_hours:g}"


class ReminderScheduler:
    """Arms, disarms and fires operation reminders."""

    def __init__(
        self,
        registry: OperationRegistry,
        fanout: NotificationFanout,
        scheduler: AsyncIOScheduler | None = None,
    ):
        self.registry = registry
        self.fanout = fanout
        self.scheduler = scheduler or create_scheduler()
        # When each operation was last armed; reminders due before this are not backfilled
        self._armed_at: dict[str, datetime] = {}

    def start(self) -> None:
        """Start the underlying scheduler and the recheck loop."""
        self.scheduler.add_job(
            self.recheck,
            trigger="interval",
            seconds=RECHECK_INTERVAL.total_seconds(),
            id=RECHECK_JOB_ID,
            replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        print("Reminder scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            print("Reminder scheduler stopped")

    # =========================================================================
    # Arming
    # =========================================================================

    def arm(
        self,
        operation_id: str,
        start_at: datetime | None,
        lead_hours: list[float],
        now: datetime | None = None,
    ) -> int:
        """
        Schedule reminder jobs for an operation.

        Lead times already in the operation's fired list are skipped, as are
        reminders whose instant has passed. Reminders beyond MAX_TIMER_DELAY
        are left to the recheck loop.

        Returns:
            Number of jobs scheduled.
        """
        now = now or datetime.now(timezone.utc)
        lead_hours = validate_lead_hours(lead_hours)
        operation = self.registry.get(operation_id)
        fired = set(operation.fired_reminders) if operation else set()

        if start_at is None:
            return 0
        self._armed_at[operation_id] = now

        scheduled = 0
        for hours in lead_hours:
            if hours in fired:
                continue
            run_at = start_at - timedelta(hours=hours)
            if run_at <= now:
                logger.info(
                    f"Skipping {format_lead_time(hours)} reminder for {operation_id}: "
                    f"window already passed"
                )
                continue
            if run_at - now > MAX_TIMER_DELAY:
                # Recheck loop arms it once it is within range
                continue
            self._add_job(operation_id, hours, run_at)
            scheduled += 1
        return scheduled

    def _add_job(self, operation_id: str, lead_hours: float, run_at: datetime) -> None:
        job_id = reminder_job_id(operation_id, lead_hours)
        self.scheduler.add_job(
            self.fire,
            trigger="date",
            run_date=run_at,
            id=job_id,
            replace_existing=True,
            kwargs={"operation_id": operation_id, "lead_hours": lead_hours},
        )
        logger.info(f"Scheduled {job_id} at {run_at}")

    def disarm(self, operation_id: str) -> int:
        """
        Cancel every outstanding reminder job for an operation.

        Idempotent: disarming an operation with no jobs is a no-op.

        Returns:
            Number of jobs cancelled
        """
        self._armed_at.pop(operation_id, None)
        pattern = f"{operation_id}_reminder_*"
        cancelled = 0
        for job in self.scheduler.get_jobs():
            if fnmatch.fnmatch(job.id, pattern):
                try:
                    job.remove()
                    cancelled += 1
                except JobLookupError:
                    pass  # Already gone
        return cancelled

    def rearm(self, operation: Operation, now: datetime | None = None) -> int:
        self.disarm(operation.operation_id)
        return self.arm(
            operation.operation_id, operation.start_at, operation.reminder_hours, now=now
        )

    def on_startup(
        self,
        operations: list[Operation] | None = None,
        now: datetime | None = None,
    ) -> int:
        """
        Re-arm reminders after a restart.

        Uses each operation's fired list so nothing fires twice.

        Returns:
            Number of operations re-armed.
        """
        now = now or datetime.now(timezone.utc)
        if operations is None:
            operations = self.registry.all_operations()

        rearmed = 0
        for operation in operations:
            if operation.start_at is None or operation.start_at <= now:
                continue
            self.rearm(operation, now=now)
            rearmed += 1
        logger.info(f"Re-armed reminders for {rearmed} operation(s)")
        return rearmed

    # =========================================================================
    # Recheck loop
    # =========================================================================

    async def recheck(self, now: datetime | None = None) -> int:
        """
        Arm reminders entering the timer horizon and fire any that are due.

        Returns:
            Number of reminders fired.
        """
        now = now or datetime.now(timezone.utc)
        fired = 0
        for operation in self.registry.all_operations():
            armed_at = self._armed_at.get(operation.operation_id)
            if operation.start_at is None or armed_at is None:
                continue
            for hours in operation.unfired_reminders():
                run_at = operation.reminder_instant(hours)
                if run_at <= now:
                    if run_at >= armed_at:
                        await self.fire(operation.operation_id, hours)
                        fired += 1
                elif run_at - now <= MAX_TIMER_DELAY:
                    job_id = reminder_job_id(operation.operation_id, hours)
                    if self.scheduler.get_job(job_id) is None:
                        self._add_job(operation.operation_id, hours, run_at)
        return fired

    # =========================================================================
    # Job execution
    # =========================================================================

    async def fire(self, operation_id: str, lead_hours: float) -> FanoutResult | None:
        """
        Deliver one reminder.

        The lead time is marked fired and saved before delivery starts, so a
        crash or delivery failure never causes a second send.
        """
        operation = self.registry.get(operation_id)
        if operation is None:
            logger.info(f"Operation {operation_id} not found, skipping reminder")
            return None

        if lead_hours in operation.fired_reminders:
            logger.info(
                f"{format_lead_time(lead_hours)} reminder for {operation_id} already sent"
            )
            return None

        if operation.start_at is not None and operation.start_at <= datetime.now(timezone.utc):
            logger.info(f"Operation {operation_id} already started, skipping reminder")
            return None

        operation.fired_reminders.append(lead_hours)
        self.registry.save()

        recipients = operation.attendee_ids()
        if not recipients:
            logger.info(f"No attendees for operation {operation_id}, skipping")
            return None

        context = {
            "operation_name": operation.name,
            "lead_time": format_lead_time(lead_hours),
            "start_time": format_start_time(operation.start_at),
            "leader": operation.leader or "TBD",
        }

        def build_message(participant_id: str) -> str:
            position = operation.assignments.get(participant_id) or UNASSIGNED_LABEL
            return get_message(
                "operation_reminder", "discord", {**context, "position": position}
            )

        result = await self.fanout.deliver(
            recipients, build_message, key=operation_id, queue=True
        )
        logger.info(
            f"Sent {format_lead_time(lead_hours)} reminder for {operation_id}: "
            f"{result.succeeded} delivered, {result.failed} failed"
        )
        return result
