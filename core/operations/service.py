"""
Operation lifecycle - the interface command handlers and the web API call.

Registry mutations are applied first and persisted; platform side effects
(role, channels, membership, messages) follow as independent best-effort
steps. A failed step is logged and reported to Sentry, never rolled back,
and never stops the steps after it.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable

import sentry_sdk

from core.enums import ResponseStatus
from core.notifications.fanout import FanoutResult, NotificationFanout
from core.notifications.scheduler import ReminderScheduler
from core.notifications.templates import get_message
from core.roster import RosterRefresher

from .assignments import AssignmentEngine, AssignmentResult
from .platform import Platform
from .registry import OperationRegistry, validate_lead_hours
from .types import Operation, Position

logger = logging.getLogger(__name__)


_UNSET = object()

# Channels are deleted children first, category last
CHANNEL_TEARDOWN_ORDER = ("voice", "info", "chat", "category")


class OperationService:
    def __init__(
        self,
        registry: OperationRegistry,
        engine: AssignmentEngine,
        reminders: ReminderScheduler,
        fanout: NotificationFanout,
        roster: RosterRefresher,
        platform: Platform,
        default_reminder_hours: list[float] | None = None,
    ):
        self.registry = registry
        self.engine = engine
        self.reminders = reminders
        self.fanout = fanout
        self.roster = roster
        self.platform = platform
        self.default_reminder_hours = default_reminder_hours or [24.0, 1.0]

    async def _side_effect(self, description: str, awaitable: Awaitable) -> Any:
        """Run one platform call; log and report failure instead of raising."""
        try:
            return await awaitable
        except Exception as e:
            logger.error(f"{description} failed: {e}")
            sentry_sdk.capture_exception(e)
            return None

    def _persist(self) -> None:
        self.registry.save()
        self.roster.request_refresh()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_operation(self, operation_id: str) -> Operation | None:
        return self.registry.get(operation_id)

    def get_active_operation(self, guild_id: str) -> Operation | None:
        return self.registry.get_active(str(guild_id))

    def list_operations(self, guild_id: str | None = None) -> list[Operation]:
        return self.registry.list_active(guild_id) + self.registry.list_scheduled(guild_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def create_operation(
        self,
        guild_id: str,
        name: str,
        *,
        leader: str = "",
        time_text: str = "",
        details: str = "",
        positions: list[Position] | None = None,
        start_at: datetime | None = None,
        reminder_hours: list[float] | None = None,
        created_by: str | None = None,
    ) -> Operation:
        """Create an active operation, provision its role and channels, arm reminders."""
        operation = self.registry.create(
            guild_id,
            name,
            leader=leader,
            time_text=time_text,
            details=details,
            positions=positions,
            start_at=start_at,
            reminder_hours=self.default_reminder_hours if reminder_hours is None else reminder_hours,
            created_by=created_by,
        )
        self.registry.save()

        await self._provision(operation)
        self.reminders.arm(operation.operation_id, operation.start_at, operation.reminder_hours)
        self._persist()
        return operation

    async def schedule_operation(
        self,
        guild_id: str,
        name: str,
        *,
        leader: str = "",
        time_text: str = "",
        details: str = "",
        positions: list[Position] | None = None,
        start_at: datetime | None = None,
        reminder_hours: list[float] | None = None,
        created_by: str | None = None,
    ) -> Operation:
        """
        Announce an operation without provisioning anything yet.

        It is discarded if not confirmed within the retention window.
        """
        operation = self.registry.create(
            guild_id,
            name,
            leader=leader,
            time_text=time_text,
            details=details,
            positions=positions,
            start_at=start_at,
            reminder_hours=self.default_reminder_hours if reminder_hours is None else reminder_hours,
            created_by=created_by,
            scheduled=True,
        )
        self.reminders.arm(operation.operation_id, operation.start_at, operation.reminder_hours)
        self._persist()
        return operation

    async def confirm_operation(self, operation_id: str) -> Operation:
        """Promote a scheduled operation to active and provision it."""
        operation = self.registry.promote(operation_id)
        self.registry.save()
        if operation.role_id is None:
            await self._provision(operation)
        if operation.role_id:
            # Members who answered while it was only scheduled
            for participant_id in operation.attendee_ids():
                await self._side_effect(
                    f"Adding {participant_id} to operation {operation_id}",
                    self.platform.add_member(operation.guild_id, operation.role_id, participant_id),
                )
        self._persist()
        return operation

    async def _provision(self, operation: Operation) -> None:
        role_id = await self._side_effect(
            f"Creating role for operation {operation.operation_id}",
            self.platform.create_group(operation.guild_id, operation.name),
        )
        if role_id:
            operation.role_id = str(role_id)
            self.registry.save()

        channel_ids = await self._side_effect(
            f"Creating channels for operation {operation.operation_id}",
            self.platform.create_channels(operation.guild_id, operation.name, operation.role_id),
        )
        if channel_ids:
            operation.channel_ids.update(channel_ids)
            self.registry.save()
        if role_id and not channel_ids:
            # TODO: delete the orphaned role once provisioning retries exist
            logger.warning(
                f"Operation {operation.operation_id} has a role but no channels"
            )

    def edit_operation(
        self,
        operation_id: str,
        *,
        name: str | None = None,
        leader: str | None = None,
        time_text: str | None = None,
        details: str | None = None,
        start_at=_UNSET,
        reminder_hours: list[float] | None = None,
    ) -> Operation:
        """
        Edit details and timing. Timing changes re-arm reminders.

        Moving the start time clears the fired list, since every reminder is
        relative to the new start.
        """
        operation = self.registry.require(operation_id)
        if name is not None:
            operation.name = name
        if leader is not None:
            operation.leader = leader
        if time_text is not None:
            operation.time_text = time_text
        if details is not None:
            operation.details = details

        timing_changed = False
        if reminder_hours is not None:
            operation.reminder_hours = validate_lead_hours(reminder_hours)
            timing_changed = True
        if start_at is not _UNSET and start_at != operation.start_at:
            operation.start_at = start_at
            operation.fired_reminders = []
            timing_changed = True

        if timing_changed:
            self.reminders.rearm(operation)
        self._persist()
        return operation

    def edit_positions(self, operation_id: str, positions: list[Position]) -> list[str]:
        return self.engine.edit_positions(operation_id, positions)

    async def stop_operation(self, operation_id: str) -> dict:
        """
        Conclude an operation: report, strip the role, delete channels and role.

        Returns:
            Dict with "removed_members" and "failed_steps" counts.
        """
        operation = self.registry.require(operation_id)
        self.reminders.disarm(operation_id)
        failed_steps = 0

        info_channel = operation.channel_ids.get("info")
        if info_channel:
            report = get_message(
                "operation_concluded",
                "discord_channel",
                {
                    "operation_name": operation.name.upper(),
                    "leader": operation.leader or "TBD",
                    "attending_count": operation.attending_count,
                    "operation_id": operation.operation_id,
                },
            )
            if await self._side_effect(
                f"Posting final report for {operation_id}",
                self._send_and_confirm(info_channel, report),
            ) is None:
                failed_steps += 1

        removed_members = 0
        if operation.role_id:
            member_ids = await self._side_effect(
                f"Listing members of operation {operation_id}",
                self.platform.get_group_member_ids(operation.guild_id, operation.role_id),
            ) or []
            for member_id in member_ids:
                done = await self._side_effect(
                    f"Removing {member_id} from operation {operation_id}",
                    self._remove_and_confirm(operation, member_id),
                )
                if done:
                    removed_members += 1
                else:
                    failed_steps += 1

        for kind in CHANNEL_TEARDOWN_ORDER:
            channel_id = operation.channel_ids.get(kind)
            if not channel_id:
                continue
            if await self._side_effect(
                f"Deleting {kind} channel of operation {operation_id}",
                self._delete_channel_and_confirm(operation, channel_id),
            ) is None:
                failed_steps += 1

        if operation.role_id:
            if await self._side_effect(
                f"Deleting role of operation {operation_id}",
                self._delete_group_and_confirm(operation),
            ) is None:
                failed_steps += 1

        self.registry.remove(operation_id)
        self._persist()
        logger.info(
            f"Operation {operation_id} concluded: {removed_members} members released, "
            f"{failed_steps} cleanup step(s) failed"
        )
        return {"removed_members": removed_members, "failed_steps": failed_steps}

    async def _send_and_confirm(self, channel_id: str, message: str) -> bool:
        await self.platform.send_channel_message(channel_id, message)
        return True

    async def _remove_and_confirm(self, operation: Operation, member_id: str) -> bool:
        await self.platform.remove_member(operation.guild_id, operation.role_id, member_id)
        return True

    async def _delete_channel_and_confirm(self, operation: Operation, channel_id: str) -> bool:
        await self.platform.delete_channel(operation.guild_id, channel_id)
        return True

    async def _delete_group_and_confirm(self, operation: Operation) -> bool:
        await self.platform.delete_group(operation.guild_id, operation.role_id)
        return True

    async def purge_expired(self, now: datetime | None = None) -> list[Operation]:
        """Scheduled job: drop unconfirmed operations past the retention window."""
        expired = self.registry.purge_expired_scheduled(now)
        for operation in expired:
            self.reminders.disarm(operation.operation_id)
        if expired:
            self._persist()
        return expired

    # =========================================================================
    # Participants
    # =========================================================================

    async def _display_name(self, operation: Operation, participant_id: str) -> str:
        name = await self._side_effect(
            f"Fetching display name for {participant_id}",
            self.platform.fetch_display_name(operation.guild_id, participant_id),
        )
        return name or ""

    async def _sync_membership(self, operation: Operation, result: AssignmentResult) -> None:
        if not operation.role_id:
            return
        was = result.previous_status is not None and result.previous_status.is_attending
        now = result.status is not None and result.status.is_attending
        if now and not was:
            await self._side_effect(
                f"Adding {result.participant_id} to operation {operation.operation_id}",
                self.platform.add_member(operation.guild_id, operation.role_id, result.participant_id),
            )
        elif was and not now:
            await self._side_effect(
                f"Removing {result.participant_id} from operation {operation.operation_id}",
                self.platform.remove_member(operation.guild_id, operation.role_id, result.participant_id),
            )

    async def add_participant(
        self, operation_id: str, participant_id: str, added_by: str | None = None
    ) -> bool:
        """Admin action: grant a member the operation role and announce it."""
        operation = self.registry.require(operation_id)
        if not operation.role_id:
            logger.warning(f"Operation {operation_id} has no role to add {participant_id} to")
            return False
        added = await self._side_effect(
            f"Adding {participant_id} to operation {operation_id}",
            self._add_and_confirm(operation, participant_id),
        )
        if not added:
            return False

        chat_channel = operation.channel_ids.get("chat")
        if chat_channel:
            display_name = await self._display_name(operation, participant_id)
            message = get_message(
                "participant_added",
                "discord_channel",
                {
                    "participant": display_name or f"<@{participant_id}>",
                    "added_by": f"<@{added_by}>" if added_by else "an administrator",
                },
            )
            await self._side_effect(
                f"Announcing {participant_id} in operation {operation_id}",
                self.platform.send_channel_message(chat_channel, message),
            )
        return True

    async def _add_and_confirm(self, operation: Operation, participant_id: str) -> bool:
        await self.platform.add_member(operation.guild_id, operation.role_id, participant_id)
        return True

    async def record_response(
        self,
        operation_id: str,
        participant_id: str,
        value,
        display_name: str | None = None,
    ) -> AssignmentResult:
        operation = self.registry.require(operation_id)
        if display_name is None:
            display_name = await self._display_name(operation, participant_id)
        result = self.engine.set_response(operation_id, participant_id, value, display_name)
        await self._sync_membership(operation, result)
        return result

    async def select_position(
        self,
        operation_id: str,
        participant_id: str,
        position: str,
        display_name: str | None = None,
    ) -> AssignmentResult:
        operation = self.registry.require(operation_id)
        if display_name is None:
            display_name = await self._display_name(operation, participant_id)
        result = self.engine.select_position(operation_id, participant_id, position, display_name)
        await self._sync_membership(operation, result)

        chat_channel = operation.channel_ids.get("chat")
        if result.changed and chat_channel:
            message = get_message(
                "position_selected",
                "discord_channel",
                {
                    "participant": display_name or f"<@{participant_id}>",
                    "position": result.position,
                },
            )
            await self._side_effect(
                f"Announcing {participant_id} as {result.position}",
                self.platform.send_channel_message(chat_channel, message),
            )
        return result

    async def remove_assignment(self, operation_id: str, participant_id: str) -> AssignmentResult:
        return self.engine.remove_assignment(operation_id, participant_id)

    # =========================================================================
    # Broadcast & roster
    # =========================================================================

    async def broadcast(
        self, operation_id: str, message: str, sender: str = "Operations"
    ) -> FanoutResult:
        """DM an announcement to everyone currently in the operation's group."""
        operation = self.registry.require(operation_id)
        recipients = None
        if operation.role_id:
            recipients = await self._side_effect(
                f"Listing members of operation {operation_id}",
                self.platform.get_group_member_ids(operation.guild_id, operation.role_id),
            )
        if recipients is None:
            recipients = operation.attendee_ids()

        text = get_message(
            "operation_broadcast",
            "discord",
            {"operation_name": operation.name, "message": message, "sender": sender},
        )
        return await self.fanout.deliver(recipients, lambda _: text, key=operation_id)

    async def force_roster_refresh(self) -> bool:
        return await self.roster.force_refresh()

    def attendance_summary(self, operation_id: str) -> dict[str, list[str]]:
        """Display names grouped by response status, positions inline."""
        operation = self.registry.require(operation_id)
        summary: dict[str, list[str]] = {status.value: [] for status in ResponseStatus}
        for participant_id, response in operation.responses.items():
            label = response.display_name or participant_id
            position = operation.assignments.get(participant_id)
            if position:
                label = f"{label} ({position})"
            summary[response.status.value].append(label)
        return summary
