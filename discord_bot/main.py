"""
Operations Bot - Discord Bot
Bot instance and cog loading; started from the root main.py.

This bot coordinates community operations: sign-ups, positions,
reminders and the live roster.
"""

import logging
import sys
from pathlib import Path

import discord
from discord.ext import commands

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.operations.errors import OperationError
from core.operations.runtime import get_runtime

logger = logging.getLogger(__name__)


def create_bot() -> commands.Bot:
    """Create and configure the bot instance."""
    intents = discord.Intents.default()
    intents.members = True  # Required to list role members for broadcasts

    return commands.Bot(command_prefix="!", intents=intents)


bot = create_bot()


# Thin adapters; business logic lives in core/
COGS = [
    "cogs.operations_cog",
    "cogs.roster_cog",
]


@bot.tree.error
async def on_app_command_error(interaction: discord.Interaction, error: discord.app_commands.AppCommandError):
    """Global error handler for slash commands."""
    if isinstance(error, discord.app_commands.MissingPermissions):
        msg = f"❌ You need **{', '.join(error.missing_permissions)}** permission(s) to use this command."
        if interaction.response.is_done():
            await interaction.followup.send(msg, ephemeral=True)
        else:
            await interaction.response.send_message(msg, ephemeral=True)
    elif isinstance(getattr(error, "original", None), (OperationError, ValueError)):
        return  # Already answered by the cog
    else:
        raise error


async def load_cogs() -> int:
    """Load every cog in COGS. Returns how many are loaded."""
    for cog in COGS:
        if cog in bot.extensions:
            continue
        try:
            await bot.load_extension(cog)
            print(f"  ✓ Loaded {cog}")
        except Exception as e:
            print(f"  ✗ Error loading {cog}: {e}")
            logger.exception(f"Failed to load {cog}")
    return len(bot.extensions)


@bot.event
async def on_ready():
    """Load cogs, sync slash commands, then draw the roster once."""
    print(f"Bot is ready! Logged in as {bot.user}")
    await load_cogs()

    try:
        synced = await bot.tree.sync()
        print(f"Synced {len(synced)} command(s)")
    except discord.HTTPException as e:
        print(f"Error syncing commands: {e}")
        logger.exception("Slash command sync failed")

    runtime = get_runtime()
    if runtime is not None:
        await runtime.roster.refresh()
