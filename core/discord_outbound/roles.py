# core/discord_outbound/roles.py
"""Discord role operations - an operation's participant group is a role."""

import logging

import discord

logger = logging.getLogger(__name__)


async def create_role(
    guild: discord.Guild,
    name: str,
    reason: str = "Operation created",
) -> discord.Role:
    """
    Create a mentionable Discord role.

    Raises:
        discord.HTTPException: If role creation fails.
    """
    return await guild.create_role(name=name, mentionable=True, reason=reason)


async def delete_role(
    role: discord.Role,
    reason: str = "Operation concluded",
) -> bool:
    """
    Delete a Discord role.

    Returns:
        True if deletion succeeded (or role was already gone), False on error.
    """
    try:
        await role.delete(reason=reason)
        return True
    except discord.NotFound:
        # Role already deleted - that's fine
        return True
    except discord.HTTPException as e:
        logger.error(f"Failed to delete role {role}: {e}")
        return False


async def add_role(
    member: discord.Member,
    role: discord.Role,
    reason: str = "Joined operation",
) -> None:
    """
    Raises:
        discord.HTTPException: If the role could not be added.
    """
    await member.add_roles(role, reason=reason)


async def remove_role(
    member: discord.Member,
    role: discord.Role,
    reason: str = "Left operation",
) -> None:
    """
    Raises:
        discord.HTTPException: If the role could not be removed.
    """
    await member.remove_roles(role, reason=reason)


def get_role_member_ids(role: discord.Role) -> list[str]:
    """Discord IDs (as strings) of all non-bot members with this role."""
    return [str(member.id) for member in role.members if not member.bot]
