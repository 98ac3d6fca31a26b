"""Read-only authorization predicates over channel memberships.

Every predicate is a single membership lookup by (user, channel). Callers
compose the checks relevant to the action at hand, e.g. posting needs
``can_post`` while changing someone's role needs ``can_moderate`` on the
actor's own membership.
"""

from uuid import UUID

from shared.database import ChannelMember, MemberRole

from ..errors import MembershipNotFound
from .stores import MembershipStore


class AccessControl:
    """Answers yes/no questions about a user's standing in a channel."""

    def __init__(self, memberships: MembershipStore):
        self.memberships = memberships

    async def is_member(self, user_id: UUID, channel_id: UUID) -> bool:
        """True iff a membership exists, whatever its ban/mute state."""
        return await self.memberships.get(user_id, channel_id) is not None

    async def is_banned(self, user_id: UUID, channel_id: UUID) -> bool:
        """True iff a membership exists and is banned. Never raises."""
        member = await self.memberships.get(user_id, channel_id)
        return member is not None and member.is_banned

    async def is_muted(self, user_id: UUID, channel_id: UUID) -> bool:
        member = await self.memberships.get(user_id, channel_id)
        return member is not None and member.is_muted

    async def is_owner(self, user_id: UUID, channel_id: UUID) -> bool:
        """Role equality check.

        Raises:
            MembershipNotFound: if the user never joined the channel
        """
        member = await self._require(user_id, channel_id)
        return member.role == MemberRole.OWNER

    async def is_admin(self, user_id: UUID, channel_id: UUID) -> bool:
        """Role equality check; an OWNER is not an ADMIN here.

        Raises:
            MembershipNotFound: if the user never joined the channel
        """
        member = await self._require(user_id, channel_id)
        return member.role == MemberRole.ADMIN

    async def can_moderate(self, user_id: UUID, channel_id: UUID) -> bool:
        member = await self._require(user_id, channel_id)
        return member.role in (MemberRole.OWNER, MemberRole.ADMIN) and not member.is_banned

    async def can_read(self, user_id: UUID, channel_id: UUID) -> bool:
        member = await self.memberships.get(user_id, channel_id)
        return member is not None and not member.is_banned

    async def can_post(self, user_id: UUID, channel_id: UUID) -> bool:
        member = await self.memberships.get(user_id, channel_id)
        return member is not None and not member.is_banned and not member.is_muted

    async def get_role(self, user_id: UUID, channel_id: UUID) -> MemberRole:
        member = await self._require(user_id, channel_id)
        return member.role

    async def _require(self, user_id: UUID, channel_id: UUID) -> ChannelMember:
        member = await self.memberships.get(user_id, channel_id)
        if member is None:
            raise MembershipNotFound(user_id, channel_id)
        return member
