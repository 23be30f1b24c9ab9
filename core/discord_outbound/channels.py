# core/discord_outbound/channels.py
import logging

import discord

logger = logging.getLogger(__name__)


async def create_category(
    guild: discord.Guild,
    name: str,
    role: discord.Role | None = None,
) -> discord.CategoryChannel:
    """Create a category hidden from everyone except the bot and ``role``."""
    overwrites = {
        guild.default_role: discord.PermissionOverwrite(view_channel=False),
        guild.me: discord.PermissionOverwrite(view_channel=True, manage_channels=True),
    }
    if role is not None:
        overwrites[role] = discord.PermissionOverwrite(
            view_channel=True,
            send_messages=True,
            read_message_history=True,
            connect=True,
            speak=True,
        )
    return await guild.create_category(name=name, overwrites=overwrites)


async def create_text_channel(
    category: discord.CategoryChannel,
    name: str,
) -> discord.TextChannel:
    """Create a text channel in a category."""
    return await category.create_text_channel(name=name)


async def create_voice_channel(
    category: discord.CategoryChannel,
    name: str,
) -> discord.VoiceChannel:
    """Create a voice channel in a category."""
    return await category.create_voice_channel(name=name)


async def get_or_fetch_channel(
    bot,
    channel_id: int,
) -> discord.abc.GuildChannel | None:
    """Get channel from cache or fetch from API."""
    channel = bot.get_channel(channel_id)
    if channel:
        return channel
    try:
        return await bot.fetch_channel(channel_id)
    except discord.NotFound:
        return None


async def delete_channel(
    channel: discord.abc.GuildChannel,
    reason: str = "Operation concluded",
) -> bool:
    """Delete a channel. A channel that is already gone counts as deleted."""
    try:
        await channel.delete(reason=reason)
        return True
    except discord.NotFound:
        return True
    except discord.HTTPException as e:
        logger.error(f"Failed to delete channel {channel}: {e}")
        return False
