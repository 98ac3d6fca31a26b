"""Membership lifecycle: creation, removal, role and ban/mute transitions.

The manager is the only writer of membership role/ban/mute fields. It does
not decide whether the caller is *allowed* to perform a transition; callers
check privileges with ``AccessControl`` first.
"""

import logging
from typing import List, Optional
from uuid import UUID

from shared.database import ChannelMember, MemberRole

from ..errors import MembershipNotFound
from .stores import ChannelStore, MembershipStore

logger = logging.getLogger(__name__)


class MembershipManager:
    """Creates, mutates and removes channel memberships."""

    def __init__(self, memberships: MembershipStore, channels: ChannelStore):
        self.memberships = memberships
        self.channels = channels

    async def create_membership(
        self,
        user_id: UUID,
        channel_id: UUID,
        role: MemberRole = MemberRole.MEMBER,
    ) -> ChannelMember:
        """Create a membership.

        Raises:
            DuplicateMembership: if (user_id, channel_id) already has a row
        """
        member = await self.memberships.create(
            ChannelMember(
                channel_id=channel_id,
                user_id=user_id,
                role=role,
                is_banned=False,
                is_muted=False,
            )
        )
        logger.info(f"Membership created: user {user_id} in channel {channel_id} as {role.value}")
        return member

    async def get_membership(self, user_id: UUID, channel_id: UUID) -> Optional[ChannelMember]:
        return await self.memberships.get(user_id, channel_id)

    async def list_members(self, channel_id: UUID) -> List[ChannelMember]:
        return await self.memberships.list_for_channel(channel_id)

    async def delete_membership(self, user_id: UUID, channel_id: UUID) -> None:
        """Remove a membership.

        Raises:
            MembershipNotFound: if there is nothing to remove; callers may ignore it
        """
        member = await self._require(user_id, channel_id)
        await self.memberships.delete(member)
        logger.info(f"Membership removed: user {user_id} from channel {channel_id}")

    async def change_role(
        self, user_id: UUID, channel_id: UUID, new_role: MemberRole
    ) -> ChannelMember:
        member = await self._require(user_id, channel_id)
        old_role = member.role
        member.role = new_role
        member = await self.memberships.save(member)
        logger.info(
            f"Role changed: user {user_id} in channel {channel_id} "
            f"{old_role.value} -> {new_role.value}"
        )
        return member

    async def set_ban_status(self, user_id: UUID, channel_id: UUID, banned: bool) -> ChannelMember:
        member = await self._require(user_id, channel_id)
        member.is_banned = banned
        member = await self.memberships.save(member)
        logger.info(f"Ban status of user {user_id} in channel {channel_id} set to {banned}")
        return member

    async def set_mute_status(self, user_id: UUID, channel_id: UUID, muted: bool) -> ChannelMember:
        member = await self._require(user_id, channel_id)
        member.is_muted = muted
        member = await self.memberships.save(member)
        logger.info(f"Mute status of user {user_id} in channel {channel_id} set to {muted}")
        return member

    async def delete_channel_if_empty(self, channel_id: UUID) -> bool:
        """Delete the channel once no more than one membership row is left.

        Meant to be called while the departing member's row still exists,
        so a single remaining row means the departing member was the last one.

        Returns:
            True if the channel was deleted
        """
        remaining = await self.memberships.count_for_channel(channel_id)
        if remaining > 1:
            return False

        channel = await self.channels.get_by_id(channel_id)
        if channel is None:
            return False

        await self.channels.delete(channel)
        logger.info(f"Channel deleted: {channel_id} ({remaining} membership(s) remained)")
        return True

    async def _require(self, user_id: UUID, channel_id: UUID) -> ChannelMember:
        member = await self.memberships.get(user_id, channel_id)
        if member is None:
            raise MembershipNotFound(user_id, channel_id)
        return member
