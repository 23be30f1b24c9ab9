"""
Interface the operations core consumes from the chat platform.

The core only stores the ids these calls return; it never inspects the
underlying objects. Implementations may raise on any call - callers treat
every method as fallible.
"""

from typing import Protocol


class Platform(Protocol):
    async def create_group(self, guild_id: str, name: str) -> str:
        """Create a participant group (a role). Returns its id."""
        ...

    async def delete_group(self, guild_id: str, group_id: str) -> None: ...

    async def create_channels(
        self, guild_id: str, name: str, group_id: str | None
    ) -> dict[str, str]:
        """
        Create the operation's channels, visible to the group.

        Returns a mapping of channel kind ("category", "info", "chat",
        "voice") to channel id for every channel that was created.
        """
        ...

    async def delete_channel(self, guild_id: str, channel_id: str) -> None: ...

    async def add_member(self, guild_id: str, group_id: str, member_id: str) -> None: ...

    async def remove_member(self, guild_id: str, group_id: str, member_id: str) -> None: ...

    async def get_group_member_ids(self, guild_id: str, group_id: str) -> list[str]: ...

    async def fetch_display_name(self, guild_id: str, member_id: str) -> str | None: ...

    async def send_dm(self, member_id: str, message: str) -> None:
        """
        Send a private message.

        Raises:
            core.notifications.errors.RateLimited
            core.notifications.errors.RecipientUnreachable
            core.notifications.errors.MissingPermission
        """
        ...

    async def send_channel_message(self, channel_id: str, message: str) -> None: ...
