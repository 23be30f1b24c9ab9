# core/discord_outbound/tests/test_roles.py
"""Tests for Discord role operations."""

import pytest
from unittest.mock import AsyncMock, MagicMock

import discord


class TestCreateRole:
    @pytest.mark.asyncio
    async def test_creates_mentionable_role(self):
        from core.discord_outbound.roles import create_role

        mock_guild = MagicMock(spec=discord.Guild)
        mock_role = MagicMock(spec=discord.Role)
        mock_guild.create_role = AsyncMock(return_value=mock_role)

        result = await create_role(mock_guild, "Operation Thunder")

        mock_guild.create_role.assert_called_once_with(
            name="Operation Thunder",
            mentionable=True,
            reason="Operation created",
        )
        assert result == mock_role

    @pytest.mark.asyncio
    async def test_raises_on_http_exception(self):
        from core.discord_outbound.roles import create_role

        mock_guild = MagicMock(spec=discord.Guild)
        mock_guild.create_role = AsyncMock(
            side_effect=discord.HTTPException(MagicMock(), "Rate limited")
        )

        with pytest.raises(discord.HTTPException):
            await create_role(mock_guild, "Test Role")


class TestDeleteRole:
    @pytest.mark.asyncio
    async def test_deletes_role_successfully(self):
        from core.discord_outbound.roles import delete_role

        mock_role = MagicMock(spec=discord.Role)
        mock_role.delete = AsyncMock()

        result = await delete_role(mock_role)

        mock_role.delete.assert_called_once_with(reason="Operation concluded")
        assert result is True

    @pytest.mark.asyncio
    async def test_returns_false_on_http_exception(self):
        from core.discord_outbound.roles import delete_role

        mock_role = MagicMock(spec=discord.Role)
        mock_role.delete = AsyncMock(
            side_effect=discord.HTTPException(MagicMock(), "Error")
        )

        result = await delete_role(mock_role)

        assert result is False

    @pytest.mark.asyncio
    async def test_returns_true_on_not_found(self):
        from core.discord_outbound.roles import delete_role

        mock_role = MagicMock(spec=discord.Role)
        mock_response = MagicMock()
        mock_response.status = 404
        mock_role.delete = AsyncMock(
            side_effect=discord.NotFound(mock_response, "Not found")
        )

        result = await delete_role(mock_role)

        # NotFound means role is already gone - that's success
        assert result is True


class TestMembership:
    @pytest.mark.asyncio
    async def test_add_role_passes_reason(self):
        from core.discord_outbound.roles import add_role

        member = MagicMock(spec=discord.Member)
        member.add_roles = AsyncMock()
        role = MagicMock(spec=discord.Role)

        await add_role(member, role)

        member.add_roles.assert_called_once_with(role, reason="Joined operation")

    @pytest.mark.asyncio
    async def test_remove_role_propagates_errors(self):
        from core.discord_outbound.roles import remove_role

        member = MagicMock(spec=discord.Member)
        member.remove_roles = AsyncMock(
            side_effect=discord.HTTPException(MagicMock(), "Error")
        )

        with pytest.raises(discord.HTTPException):
            await remove_role(member, MagicMock(spec=discord.Role))


class TestGetRoleMemberIds:
    def test_returns_member_ids_as_strings(self):
        from core.discord_outbound.roles import get_role_member_ids

        mock_member1 = MagicMock(spec=discord.Member)
        mock_member1.id = 123456789
        mock_member1.bot = False
        mock_member2 = MagicMock(spec=discord.Member)
        mock_member2.id = 987654321
        mock_member2.bot = False

        mock_role = MagicMock(spec=discord.Role)
        mock_role.members = [mock_member1, mock_member2]

        assert get_role_member_ids(mock_role) == ["123456789", "987654321"]

    def test_skips_bots(self):
        from core.discord_outbound.roles import get_role_member_ids

        human = MagicMock(spec=discord.Member)
        human.id = 1
        human.bot = False
        bot_member = MagicMock(spec=discord.Member)
        bot_member.id = 2
        bot_member.bot = True

        mock_role = MagicMock(spec=discord.Role)
        mock_role.members = [human, bot_member]

        assert get_role_member_ids(mock_role) == ["1"]
