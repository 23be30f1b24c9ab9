# core/discord_outbound/platform.py
"""discord.py implementation of the platform interface used by the operations core."""

import logging

import discord

from .bot import get_bot, get_or_fetch_member
from .channels import (
    create_category,
    create_text_channel,
    create_voice_channel,
    delete_channel,
    get_or_fetch_channel,
)
from .messages import deliver_dm
from .roles import add_role, create_role, delete_role, get_role_member_ids, remove_role

logger = logging.getLogger(__name__)


class PlatformUnavailable(Exception):
    """The bot is not connected or cannot see the requested guild/object."""
    pass


class DiscordPlatform:
    """Roles are participant groups; each operation gets a category with three channels."""

    def __init__(self, bot: discord.Client | None = None):
        self._bot = bot

    @property
    def bot(self) -> discord.Client:
        bot = self._bot or get_bot()
        if bot is None:
            raise PlatformUnavailable("Discord bot not configured")
        return bot

    def _guild(self, guild_id: str) -> discord.Guild:
        guild = self.bot.get_guild(int(guild_id))
        if guild is None:
            raise PlatformUnavailable(f"Bot is not in guild {guild_id}")
        return guild

    def _role(self, guild: discord.Guild, group_id: str) -> discord.Role:
        role = guild.get_role(int(group_id))
        if role is None:
            raise PlatformUnavailable(f"Role {group_id} not found in {guild.id}")
        return role

    async def _member(self, guild: discord.Guild, member_id: str) -> discord.Member:
        member = await get_or_fetch_member(guild, int(member_id))
        if member is None:
            raise PlatformUnavailable(f"Member {member_id} not found in {guild.id}")
        return member

    async def create_group(self, guild_id: str, name: str) -> str:
        role = await create_role(self._guild(guild_id), f"Operation {name}")
        return str(role.id)

    async def delete_group(self, guild_id: str, group_id: str) -> None:
        guild = self._guild(guild_id)
        role = guild.get_role(int(group_id))
        if role is None:
            return
        if not await delete_role(role):
            raise PlatformUnavailable(f"Could not delete role {group_id}")

    async def create_channels(
        self, guild_id: str, name: str, group_id: str | None
    ) -> dict[str, str]:
        guild = self._guild(guild_id)
        role = guild.get_role(int(group_id)) if group_id else None
        category = await create_category(guild, f"Operation {name}", role=role)
        channel_ids = {"category": str(category.id)}

        builders = [
            ("info", create_text_channel, "op-info"),
            ("chat", create_text_channel, "op-chat"),
            ("voice", create_voice_channel, "Op Voice"),
        ]
        for kind, build, channel_name in builders:
            try:
                channel = await build(category, channel_name)
                channel_ids[kind] = str(channel.id)
            except discord.HTTPException as e:
                logger.error(f"Failed to create {kind} channel for {name}: {e}")
        return channel_ids

    async def delete_channel(self, guild_id: str, channel_id: str) -> None:
        channel = await get_or_fetch_channel(self.bot, int(channel_id))
        if channel is None:
            return
        if not await delete_channel(channel):
            raise PlatformUnavailable(f"Could not delete channel {channel_id}")

    async def add_member(self, guild_id: str, group_id: str, member_id: str) -> None:
        guild = self._guild(guild_id)
        await add_role(await self._member(guild, member_id), self._role(guild, group_id))

    async def remove_member(self, guild_id: str, group_id: str, member_id: str) -> None:
        guild = self._guild(guild_id)
        await remove_role(await self._member(guild, member_id), self._role(guild, group_id))

    async def get_group_member_ids(self, guild_id: str, group_id: str) -> list[str]:
        guild = self._guild(guild_id)
        return get_role_member_ids(self._role(guild, group_id))

    async def fetch_display_name(self, guild_id: str, member_id: str) -> str | None:
        member = await get_or_fetch_member(self._guild(guild_id), int(member_id))
        return member.display_name if member else None

    async def send_dm(self, member_id: str, message: str) -> None:
        await deliver_dm(member_id, message)

    async def send_channel_message(self, channel_id: str, message: str) -> None:
        channel = await get_or_fetch_channel(self.bot, int(channel_id))
        if channel is None:
            raise PlatformUnavailable(f"Channel {channel_id} not found")
        await channel.send(message)
