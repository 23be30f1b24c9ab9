# core/discord_outbound/bot.py
"""Process-wide discord.py client and cache-first lookups against it."""

import discord

_bot: discord.Client | None = None


def set_bot(bot: discord.Client | None) -> None:
    """Register the running client. main.py calls this before the bot starts."""
    global _bot
    _bot = bot


def get_bot() -> discord.Client | None:
    return _bot


async def get_or_fetch_member(guild: discord.Guild, member_id: int) -> discord.Member | None:
    """Guild member from cache, else from the API; None if they left."""
    return guild.get_member(member_id) or await _fetch_or_none(guild.fetch_member, member_id)


async def get_or_fetch_user(bot: discord.Client, user_id: int) -> discord.User:
    """
    User from cache, else from the API.

    Raises:
        discord.NotFound: The account does not exist.
    """
    return bot.get_user(user_id) or await bot.fetch_user(user_id)


async def _fetch_or_none(fetch, object_id: int):
    try:
        return await fetch(object_id)
    except discord.NotFound:
        return None
