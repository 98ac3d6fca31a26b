"""Caller-specific channel listings and DM resolution."""

from typing import List, Optional
from uuid import UUID

from shared.database import Channel, ChannelType

from .access_control import AccessControl
from .stores import ChannelStore, MembershipStore

JOINED_GROUP_TYPES = (ChannelType.PUBLIC, ChannelType.PROTECTED)


def dm_channel_name(first_user_id: UUID, second_user_id: UUID) -> str:
    """Name of the DM channel created by ``first_user_id``.

    The name is ordered; lookups try both orders.
    """
    return f"user{first_user_id}:user{second_user_id}"


class ChannelDirectory:
    """Builds the channel listings a user is allowed to see."""

    def __init__(
        self,
        channels: ChannelStore,
        memberships: MembershipStore,
        access: AccessControl,
    ):
        self.channels = channels
        self.memberships = memberships
        self.access = access

    async def list_visible_channels(self, user_id: UUID) -> List[Channel]:
        """Group channels the user may see, in store order.

        Public channels are visible unless the user is banned from them;
        non-public channels only to their members. DM channels never appear.
        """
        visible = []
        for channel in await self.channels.list_group_channels():
            if channel.is_public:
                if await self.access.is_banned(user_id, channel.id):
                    continue
            elif not await self.access.is_member(user_id, channel.id):
                continue
            visible.append(channel)
        return visible

    async def list_joined_group_channels(self, user_id: UUID) -> List[Channel]:
        """PUBLIC/PROTECTED channels where the user holds a non-banned membership."""
        memberships = await self.memberships.list_for_user(user_id, banned=False)
        channels = await self.channels.list_by_ids([m.channel_id for m in memberships])
        return [c for c in channels if c.channel_type in JOINED_GROUP_TYPES]

    async def list_joined_dm_channels(self, user_id: UUID) -> List[Channel]:
        memberships = await self.memberships.list_for_user(user_id)
        channels = await self.channels.list_by_ids([m.channel_id for m in memberships])
        return [c for c in channels if c.channel_type == ChannelType.DM]

    async def resolve_dm_channel(
        self, user_a_id: UUID, user_b_id: UUID
    ) -> Optional[Channel]:
        """Find the DM between two users regardless of who created it."""
        for name in (
            dm_channel_name(user_a_id, user_b_id),
            dm_channel_name(user_b_id, user_a_id),
        ):
            channel = await self.channels.get_by_name(name)
            if channel is not None and channel.channel_type == ChannelType.DM:
                return channel
        return None
