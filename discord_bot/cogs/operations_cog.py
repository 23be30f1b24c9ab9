"""
Operations Cog - Discord adapter for the operation lifecycle.

Every command parses its arguments and calls OperationService; the replies
are the only Discord-specific logic here.
"""

import logging
import sys
from pathlib import Path

import discord
from discord import app_commands
from discord.ext import commands

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from core.operations.errors import OperationError, OperationNotFound
from core.operations.runtime import get_service
from core.operations.service import OperationService
from core.operations.types import Operation
from discord_bot.utils import parse_positions, parse_reminder_hours, parse_start_time

logger = logging.getLogger(__name__)


RESPONSE_CHOICES = [
    app_commands.Choice(name="Attending", value="attending"),
    app_commands.Choice(name="Undecided", value="undecided"),
    app_commands.Choice(name="Declined", value="declined"),
]


async def _reply(interaction: discord.Interaction, content: str, ephemeral: bool = True):
    if interaction.response.is_done():
        await interaction.followup.send(content, ephemeral=ephemeral)
    else:
        await interaction.response.send_message(content, ephemeral=ephemeral)


def _describe(operation: Operation) -> str:
    positions = ", ".join(
        p.name if p.max_slots is None else f"{p.name} ({p.max_slots})"
        for p in operation.positions
    ) or "none"
    return (
        f"**{operation.name}** (`{operation.operation_id}`)\n"
        f"Leader: {operation.leader or 'TBD'} | Time: {operation.time_text or 'TBD'}\n"
        f"Positions: {positions}"
    )


class OperationsCog(commands.Cog):
    """Slash commands for creating, running and joining operations."""

    operation = app_commands.Group(name="operation", description="Manage operations")

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def service(self) -> OperationService:
        return get_service()

    def _resolve(self, interaction: discord.Interaction, operation_id: str | None) -> Operation:
        """Explicit id, or the guild's most recent active operation."""
        if operation_id:
            return self.service.registry.require(operation_id)
        operation = self.service.get_active_operation(str(interaction.guild_id))
        if operation is None:
            raise OperationNotFound("(active)")
        return operation

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ):
        original = getattr(error, "original", error)
        if isinstance(original, (OperationError, ValueError)):
            await _reply(interaction, f"❌ {original}")
            return
        if isinstance(error, app_commands.MissingPermissions):
            return  # Answered by the global handler
        logger.exception(f"Operation command failed: {original}")
        await _reply(interaction, "❌ Something went wrong. Please try again.")

    async def position_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        operation = self.service.get_active_operation(str(interaction.guild_id))
        if operation is None:
            return []
        return [
            app_commands.Choice(name=p.name[:100], value=p.name)
            for p in operation.positions
            if current.lower() in p.name.lower()
        ][:25]

    # ------------------------------------------------------------------
    # Management
    # ------------------------------------------------------------------

    @operation.command(name="create", description="Create an operation with its role and channels")
    @app_commands.checks.has_permissions(manage_roles=True)
    @app_commands.describe(
        name="Operation name",
        start="Start time, e.g. 2025-06-01 18:00 (UTC) or <t:...>",
        positions="Positions with optional limits, e.g. Pilot:1, Crew:4, Observer",
        leader="Who is leading",
        details="Briefing text",
        reminders="Reminder lead times in hours, e.g. 24, 1",
    )
    async def create(
        self,
        interaction: discord.Interaction,
        name: str,
        start: str | None = None,
        positions: str | None = None,
        leader: str | None = None,
        details: str | None = None,
        reminders: str | None = None,
    ):
        await interaction.response.defer(ephemeral=True)
        start_at = parse_start_time(start)
        operation = await self.service.create_operation(
            str(interaction.guild_id),
            name,
            leader=leader or interaction.user.display_name,
            time_text=start or "",
            details=details or "",
            positions=parse_positions(positions),
            start_at=start_at,
            reminder_hours=parse_reminder_hours(reminders),
            created_by=str(interaction.user.id),
        )
        await _reply(interaction, f"✅ Operation created.\n{_describe(operation)}")

    @operation.command(name="schedule", description="Announce an operation to confirm later")
    @app_commands.checks.has_permissions(manage_roles=True)
    async def schedule(
        self,
        interaction: discord.Interaction,
        name: str,
        start: str | None = None,
        positions: str | None = None,
        leader: str | None = None,
        details: str | None = None,
        reminders: str | None = None,
    ):
        operation = await self.service.schedule_operation(
            str(interaction.guild_id),
            name,
            leader=leader or interaction.user.display_name,
            time_text=start or "",
            details=details or "",
            positions=parse_positions(positions),
            start_at=parse_start_time(start),
            reminder_hours=parse_reminder_hours(reminders),
            created_by=str(interaction.user.id),
        )
        await _reply(
            interaction,
            f"📅 Operation scheduled. Confirm within 24 hours with "
            f"`/operation confirm {operation.operation_id}`.\n{_describe(operation)}",
        )

    @operation.command(name="confirm", description="Confirm a scheduled operation")
    @app_commands.checks.has_permissions(manage_roles=True)
    async def confirm(self, interaction: discord.Interaction, operation_id: str):
        await interaction.response.defer(ephemeral=True)
        operation = await self.service.confirm_operation(operation_id)
        await _reply(interaction, f"✅ Operation confirmed.\n{_describe(operation)}")

    @operation.command(name="stop", description="Conclude an operation and clean up")
    @app_commands.checks.has_permissions(manage_roles=True)
    async def stop(self, interaction: discord.Interaction, operation_id: str | None = None):
        await interaction.response.defer(ephemeral=True)
        operation = self._resolve(interaction, operation_id)
        report = await self.service.stop_operation(operation.operation_id)
        message = f"🏁 Operation **{operation.name}** concluded."
        if report["failed_steps"]:
            message += f" {report['failed_steps']} cleanup step(s) failed, see logs."
        await _reply(interaction, message)

    @operation.command(name="edit", description="Edit an operation's details or timing")
    @app_commands.checks.has_permissions(manage_roles=True)
    async def edit(
        self,
        interaction: discord.Interaction,
        operation_id: str | None = None,
        name: str | None = None,
        start: str | None = None,
        leader: str | None = None,
        details: str | None = None,
        reminders: str | None = None,
    ):
        operation = self._resolve(interaction, operation_id)
        changes = {}
        if start is not None:
            changes["start_at"] = parse_start_time(start)
            changes["time_text"] = start
        operation = self.service.edit_operation(
            operation.operation_id,
            name=name,
            leader=leader,
            details=details,
            reminder_hours=parse_reminder_hours(reminders),
            **changes,
        )
        await _reply(interaction, f"✏️ Operation updated.\n{_describe(operation)}")

    @operation.command(name="positions", description="Replace an operation's positions")
    @app_commands.checks.has_permissions(manage_roles=True)
    async def positions(
        self,
        interaction: discord.Interaction,
        positions: str,
        operation_id: str | None = None,
    ):
        operation = self._resolve(interaction, operation_id)
        purged = self.service.edit_positions(operation.operation_id, parse_positions(positions))
        message = f"✏️ Positions updated.\n{_describe(operation)}"
        if purged:
            mentions = ", ".join(f"<@{pid}>" for pid in purged)
            message += f"\nNeed a new position: {mentions}"
        await _reply(interaction, message)

    @operation.command(name="add", description="Add a member to an operation")
    @app_commands.checks.has_permissions(manage_roles=True)
    async def add(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        operation_id: str | None = None,
    ):
        await interaction.response.defer(ephemeral=True)
        operation = self._resolve(interaction, operation_id)
        added = await self.service.add_participant(
            operation.operation_id, str(member.id), added_by=str(interaction.user.id)
        )
        if added:
            await _reply(interaction, f"✅ Added {member.mention} to **{operation.name}**.")
        else:
            await _reply(interaction, f"❌ Could not add {member.mention}, see logs.")

    @operation.command(name="broadcast", description="DM everyone in an operation")
    @app_commands.checks.has_permissions(manage_roles=True)
    async def broadcast(
        self,
        interaction: discord.Interaction,
        message: str,
        operation_id: str | None = None,
    ):
        await interaction.response.defer(ephemeral=True)
        operation = self._resolve(interaction, operation_id)
        result = await self.service.broadcast(
            operation.operation_id, message, sender=interaction.user.display_name
        )
        if result.suppressed:
            await _reply(interaction, "⏳ A message to this operation is already being sent.")
            return
        await _reply(
            interaction,
            f"📢 Sent to {result.succeeded} member(s)"
            + (f", {result.failed} could not be reached." if result.failed else "."),
        )

    @operation.command(name="unassign", description="Clear a member's position")
    @app_commands.checks.has_permissions(manage_roles=True)
    async def unassign(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        operation_id: str | None = None,
    ):
        operation = self._resolve(interaction, operation_id)
        result = await self.service.remove_assignment(operation.operation_id, str(member.id))
        if result.previous_position is None:
            await _reply(interaction, f"{member.mention} has no position.")
        else:
            await _reply(
                interaction,
                f"✅ {member.mention} removed from **{result.previous_position}**.",
            )

    @operation.command(name="roster", description="Refresh the operations roster now")
    async def roster(self, interaction: discord.Interaction):
        refreshed = await self.service.force_roster_refresh()
        await _reply(
            interaction,
            "🔄 Roster refreshed." if refreshed else "⏳ Roster was refreshed recently.",
        )

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    @operation.command(name="respond", description="Say whether you are attending")
    @app_commands.choices(response=RESPONSE_CHOICES)
    async def respond(
        self,
        interaction: discord.Interaction,
        response: app_commands.Choice[str],
        operation_id: str | None = None,
    ):
        await interaction.response.defer(ephemeral=True)
        operation = self._resolve(interaction, operation_id)
        result = await self.service.record_response(
            operation.operation_id,
            str(interaction.user.id),
            response.value,
            display_name=interaction.user.display_name,
        )
        message = f"Response recorded: **{result.status.value}**."
        if result.status.value == "pending":
            message += " Pick a position with `/operation position`."
        await _reply(interaction, message)

    @operation.command(name="position", description="Choose your position")
    @app_commands.autocomplete(position=position_autocomplete)
    async def position(
        self,
        interaction: discord.Interaction,
        position: str,
        operation_id: str | None = None,
    ):
        await interaction.response.defer(ephemeral=True)
        operation = self._resolve(interaction, operation_id)
        result = await self.service.select_position(
            operation.operation_id,
            str(interaction.user.id),
            position,
            display_name=interaction.user.display_name,
        )
        await _reply(interaction, f"✅ You are attending as **{result.position}**.")


async def setup(bot):
    await bot.add_cog(OperationsCog(bot))
