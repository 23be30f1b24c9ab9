# core/discord_outbound/messages.py
import discord

from core.notifications.errors import (
    DeliveryError,
    MissingPermission,
    RateLimited,
    RecipientUnreachable,
)

from .bot import get_bot, get_or_fetch_user

# Discord error code: "Cannot send messages to this user"
CANNOT_DM_USER = 50007


def classify_discord_error(error: Exception) -> DeliveryError:
    """Translate a discord.py exception into a delivery outcome."""
    if isinstance(error, discord.RateLimited):
        return RateLimited(retry_after=error.retry_after, message=str(error))
    if isinstance(error, discord.NotFound):
        return RecipientUnreachable(str(error))
    if isinstance(error, discord.Forbidden):
        if error.code == CANNOT_DM_USER:
            return RecipientUnreachable(str(error))
        return MissingPermission(str(error))
    if isinstance(error, discord.HTTPException) and error.status == 429:
        return RateLimited(message=str(error))
    return DeliveryError(str(error))


async def deliver_dm(discord_id: str, message: str) -> None:
    """
    Send a DM to a user.

    Raises:
        DeliveryError (or a subclass) describing why the DM failed.
    """
    bot = get_bot()
    if not bot:
        raise DeliveryError("Discord bot not configured")
    try:
        user = await get_or_fetch_user(bot, int(discord_id))
        await user.send(message)
    except discord.DiscordException as e:
        raise classify_discord_error(e) from e

