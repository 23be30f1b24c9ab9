# core/discord_outbound/__init__.py
"""Discord outbound operations - all Discord API calls go through here."""

from .bot import get_bot, get_or_fetch_member, get_or_fetch_user, set_bot
from .channels import (
    create_category,
    create_text_channel,
    create_voice_channel,
    delete_channel,
    get_or_fetch_channel,
)
from .messages import classify_discord_error, deliver_dm
from .platform import DiscordPlatform, PlatformUnavailable
from .roles import add_role, create_role, delete_role, get_role_member_ids, remove_role

__all__ = [
    "set_bot",
    "get_bot",
    "get_or_fetch_member",
    "get_or_fetch_user",
    "deliver_dm",
    "classify_discord_error",
    "create_category",
    "create_text_channel",
    "create_voice_channel",
    "delete_channel",
    "get_or_fetch_channel",
    "create_role",
    "delete_role",
    "add_role",
    "remove_role",
    "get_role_member_ids",
    "DiscordPlatform",
    "PlatformUnavailable",
]
