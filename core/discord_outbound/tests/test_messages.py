"""Tests for DM delivery and Discord error classification."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import discord

from core.discord_outbound.messages import classify_discord_error, deliver_dm
from core.notifications.errors import (
    DeliveryError,
    MissingPermission,
    RateLimited,
    RecipientUnreachable,
)


def _response(status: int) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.reason = "error"
    return response


class TestClassifyDiscordError:
    def test_rate_limited_carries_retry_after(self):
        result = classify_discord_error(discord.RateLimited(3.5))

        assert isinstance(result, RateLimited)
        assert result.retry_after == 3.5

    def test_http_429_is_rate_limited(self):
        error = discord.HTTPException(_response(429), "Too many requests")

        result = classify_discord_error(error)

        assert isinstance(result, RateLimited)
        assert result.retry_after is None

    def test_dms_closed_is_unreachable(self):
        error = discord.Forbidden(
            _response(403),
            {"code": 50007, "message": "Cannot send messages to this user"},
        )

        assert isinstance(classify_discord_error(error), RecipientUnreachable)

    def test_other_forbidden_is_missing_permission(self):
        error = discord.Forbidden(_response(403), {"code": 50013, "message": "Missing Permissions"})

        assert isinstance(classify_discord_error(error), MissingPermission)

    def test_unknown_user_is_unreachable(self):
        error = discord.NotFound(_response(404), "Unknown User")

        assert isinstance(classify_discord_error(error), RecipientUnreachable)

    def test_server_error_is_transient(self):
        error = discord.HTTPException(_response(500), "Internal error")

        result = classify_discord_error(error)

        assert type(result) is DeliveryError


class TestDeliverDm:
    @pytest.mark.asyncio
    async def test_sends_to_fetched_user(self):
        user = MagicMock()
        user.send = AsyncMock()
        bot = MagicMock()
        bot.get_user.return_value = None
        bot.fetch_user = AsyncMock(return_value=user)

        with patch("core.discord_outbound.messages.get_bot", return_value=bot):
            await deliver_dm("123", "hello")

        bot.fetch_user.assert_called_once_with(123)
        user.send.assert_called_once_with("hello")

    @pytest.mark.asyncio
    async def test_raises_classified_error(self):
        user = MagicMock()
        user.send = AsyncMock(
            side_effect=discord.Forbidden(_response(403), {"code": 50007, "message": "no"})
        )
        bot = MagicMock()
        bot.get_user.return_value = None
        bot.fetch_user = AsyncMock(return_value=user)

        with patch("core.discord_outbound.messages.get_bot", return_value=bot):
            with pytest.raises(RecipientUnreachable):
                await deliver_dm("123", "hello")

    @pytest.mark.asyncio
    async def test_no_bot_is_delivery_error(self):
        with patch("core.discord_outbound.messages.get_bot", return_value=None):
            with pytest.raises(DeliveryError):
                await deliver_dm("123", "hello")

    @pytest.mark.asyncio
    async def test_uses_cached_user(self):
        user = MagicMock()
        user.send = AsyncMock()
        bot = MagicMock()
        bot.get_user.return_value = user
        bot.fetch_user = AsyncMock()

        with patch("core.discord_outbound.messages.get_bot", return_value=bot):
            await deliver_dm("123", "hello")

        bot.fetch_user.assert_not_called()
        user.send.assert_called_once_with("hello")
