"""Tests for the discord.py platform adapter."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import discord

from core.discord_outbound.platform import DiscordPlatform, PlatformUnavailable


def _guild_with_category():
    guild = MagicMock(spec=discord.Guild)
    guild.id = 1
    category = MagicMock(spec=discord.CategoryChannel)
    category.id = 10
    guild.get_role.return_value = None
    return guild, category


class TestCreateChannels:
    @pytest.mark.asyncio
    async def test_one_failed_channel_does_not_stop_the_rest(self):
        guild, category = _guild_with_category()
        bot = MagicMock()
        bot.get_guild.return_value = guild

        info = MagicMock(id=11)
        voice = MagicMock(id=13)
        text_builder = AsyncMock(
            side_effect=[info, discord.HTTPException(MagicMock(), "Missing access")]
        )

        with patch(
            "core.discord_outbound.platform.create_category",
            AsyncMock(return_value=category),
        ), patch(
            "core.discord_outbound.platform.create_text_channel", text_builder
        ), patch(
            "core.discord_outbound.platform.create_voice_channel",
            AsyncMock(return_value=voice),
        ):
            result = await DiscordPlatform(bot).create_channels("1", "Thunder-01", None)

        assert result == {"category": "10", "info": "11", "voice": "13"}


class TestAvailability:
    @pytest.mark.asyncio
    async def test_without_bot_raises(self):
        with patch("core.discord_outbound.platform.get_bot", return_value=None):
            with pytest.raises(PlatformUnavailable):
                await DiscordPlatform().create_group("1", "Thunder-01")

    @pytest.mark.asyncio
    async def test_unknown_guild_raises(self):
        bot = MagicMock()
        bot.get_guild.return_value = None

        with pytest.raises(PlatformUnavailable):
            await DiscordPlatform(bot).get_group_member_ids("1", "2")

    @pytest.mark.asyncio
    async def test_delete_missing_group_is_noop(self):
        guild, _ = _guild_with_category()
        bot = MagicMock()
        bot.get_guild.return_value = guild

        await DiscordPlatform(bot).delete_group("1", "99")
