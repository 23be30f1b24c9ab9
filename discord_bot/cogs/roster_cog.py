"""Roster cog - keeps one embed in the roster channel in sync with active operations."""

import logging
import sys
from pathlib import Path

import discord
from discord.ext import commands

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from core.config import get_roster_channel_id
from core.discord_outbound import get_or_fetch_channel
from core.operations.runtime import get_runtime

logger = logging.getLogger(__name__)


def build_roster_embed(operations) -> discord.Embed:
    embed = discord.Embed(title="📋 Operations Roster", color=discord.Color.dark_green())
    if not operations:
        embed.description = "No active operations."
        return embed

    for operation in operations[:25]:
        lines = []
        for position in operation.positions:
            holders = [
                operation.responses[pid].display_name
                if pid in operation.responses and operation.responses[pid].display_name
                else f"<@{pid}>"
                for pid, assigned in operation.assignments.items()
                if assigned == position.name
            ]
            limit = "∞" if position.max_slots is None else position.max_slots
            lines.append(
                f"**{position.name}** ({len(holders)}/{limit}): "
                + (", ".join(holders) or "-")
            )
        pending = sum(
            1 for r in operation.responses.values() if r.status.value == "pending"
        )
        lines.append(f"Attending: {operation.attending_count} | Awaiting position: {pending}")
        embed.add_field(
            name=f"{operation.name} - {operation.time_text or 'TBD'}",
            value="\n".join(lines)[:1024],
            inline=False,
        )
    return embed


class RosterCog(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self._message: discord.Message | None = None

    async def refresh_roster(self) -> None:
        channel_id = get_roster_channel_id()
        runtime = get_runtime()
        if channel_id is None or runtime is None:
            return
        channel = await get_or_fetch_channel(self.bot, channel_id)
        if channel is None:
            logger.warning(f"Roster channel {channel_id} not found")
            return

        embed = build_roster_embed(runtime.registry.list_active(str(channel.guild.id)))
        if self._message is not None:
            try:
                await self._message.edit(embed=embed)
                return
            except discord.NotFound:
                self._message = None
        self._message = await channel.send(embed=embed)


async def setup(bot):
    cog = RosterCog(bot)
    runtime = get_runtime()
    if runtime is not None:
        runtime.roster.set_refresh_fn(cog.refresh_roster)
    await bot.add_cog(cog)
