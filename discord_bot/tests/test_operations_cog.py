"""Tests for the participant slash commands in the operations cog."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from discord import app_commands

from core.enums import ResponseStatus
from discord_bot.cogs.operations_cog import OperationsCog


def _interaction():
    interaction = MagicMock()
    interaction.guild_id = 1
    interaction.user.id = 42
    interaction.user.display_name = "Ace"
    interaction.response.defer = AsyncMock()
    interaction.response.is_done.return_value = True
    interaction.followup.send = AsyncMock()
    return interaction


def _service(interaction, method: str, result):
    """Service whose ``method`` requires the interaction to be deferred already."""
    service = MagicMock()
    service.get_active_operation.return_value = MagicMock(operation_id="op_1")

    async def call(*args, **kwargs):
        interaction.response.defer.assert_awaited_once()
        return result

    setattr(service, method, AsyncMock(side_effect=call))
    return service


class TestParticipantCommands:
    @pytest.mark.asyncio
    async def test_respond_defers_before_recording(self):
        interaction = _interaction()
        service = _service(
            interaction, "record_response", MagicMock(status=ResponseStatus.attending)
        )
        cog = OperationsCog(MagicMock())
        choice = app_commands.Choice(name="Attending", value="attending")

        with patch("discord_bot.cogs.operations_cog.get_service", return_value=service):
            await OperationsCog.respond.callback(cog, interaction, choice)

        service.record_response.assert_awaited_once_with(
            "op_1", "42", "attending", display_name="Ace"
        )
        interaction.followup.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_position_defers_before_selecting(self):
        interaction = _interaction()
        service = _service(interaction, "select_position", MagicMock(position="Pilot"))
        cog = OperationsCog(MagicMock())

        with patch("discord_bot.cogs.operations_cog.get_service", return_value=service):
            await OperationsCog.position.callback(cog, interaction, "Pilot")

        service.select_position.assert_awaited_once_with(
            "op_1", "42", "Pilot", display_name="Ace"
        )
        content = interaction.followup.send.call_args.args[0]
        assert "Pilot" in content
