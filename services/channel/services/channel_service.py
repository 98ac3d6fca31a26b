"""Channel service - business logic exposed to the transport layer.

Composes the membership manager, access control, channel directory and
password gate into the channel and membership lifecycle operations, and
publishes a domain event for every state change.

Each mutating operation is one transaction: the stores only flush, and the
service commits once every step has succeeded, before publishing. A failed
step leaves the rollback to the request session (``get_db``).
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import Channel, ChannelMember, ChannelType, MemberRole, Message, User

from ..errors import (
    ChannelNameTaken,
    ChannelNotFound,
    InvalidChannelOperation,
    MembershipNotFound,
    PermissionDenied,
)
from .access_control import AccessControl
from .channel_directory import ChannelDirectory, dm_channel_name
from .membership_manager import MembershipManager
from .password_gate import PasswordGate
from .stores import ChannelStore, MessageStore, UserDirectory

logger = logging.getLogger(__name__)


class ChannelService:
    """Channel and membership lifecycle operations."""

    def __init__(
        self,
        db: AsyncSession,
        channels: ChannelStore,
        messages: MessageStore,
        users: UserDirectory,
        manager: MembershipManager,
        access: AccessControl,
        directory: ChannelDirectory,
        password_gate: PasswordGate,
        publisher,
    ):
        self.db = db
        self.channels = channels
        self.messages = messages
        self.users = users
        self.manager = manager
        self.access = access
        self.directory = directory
        self.password_gate = password_gate
        self.publisher = publisher

    # ------------------------------------------------------------------
    # Channel lifecycle
    # ------------------------------------------------------------------

    async def create_group_channel(
        self, owner_id: UUID, name: str, password: Optional[str] = None
    ) -> Channel:
        """Create a PUBLIC channel, or a PROTECTED one when a password is given."""
        channel = await self.channels.create(
            Channel(
                name=name,
                channel_type=ChannelType.PUBLIC,
                is_public=True,
                created_by_id=owner_id,
            )
        )
        await self.manager.create_membership(owner_id, channel.id, MemberRole.OWNER)
        if password:
            channel = await self.password_gate.set_channel_password(channel.id, password)
        await self.db.commit()

        logger.info(f"Channel created: {channel.id} ({channel.name}) by user {owner_id}")
        await self._publish("channel.created", channel.id, {
            "name": channel.name,
            "channel_type": channel.channel_type.value,
            "creator_id": str(owner_id),
        })
        return channel

    async def create_private_channel(self, owner_id: UUID, name: str) -> Channel:
        channel = await self.channels.create(
            Channel(
                name=name,
                channel_type=ChannelType.PRIVATE,
                is_public=False,
                created_by_id=owner_id,
            )
        )
        await self.manager.create_membership(owner_id, channel.id, MemberRole.OWNER)
        await self.db.commit()

        logger.info(f"Private channel created: {channel.id} ({channel.name}) by user {owner_id}")
        await self._publish("channel.created", channel.id, {
            "name": channel.name,
            "channel_type": channel.channel_type.value,
            "creator_id": str(owner_id),
        })
        return channel

    async def create_dm_channel(self, sender_id: UUID, receiver_id: UUID) -> Channel:
        """Create or get the direct message channel between two users.

        Idempotent: an existing DM is returned whichever user created it.
        """
        if sender_id == receiver_id:
            raise InvalidChannelOperation("Cannot create DM channel with yourself")

        await self.users.get_profile_by_user_id(receiver_id)

        existing = await self.directory.resolve_dm_channel(sender_id, receiver_id)
        if existing is not None:
            logger.info(
                f"Returning existing DM channel: {existing.id} between users "
                f"{sender_id} and {receiver_id}"
            )
            return existing

        try:
            channel = await self.channels.create(
                Channel(
                    name=dm_channel_name(sender_id, receiver_id),
                    channel_type=ChannelType.DM,
                    is_public=False,
                    created_by_id=sender_id,
                )
            )
        except ChannelNameTaken:
            # A concurrent request created the same DM first
            winner = await self.directory.resolve_dm_channel(sender_id, receiver_id)
            if winner is None:
                raise
            logger.info(f"Lost DM creation race, returning channel {winner.id}")
            return winner

        await self.manager.create_membership(sender_id, channel.id, MemberRole.MEMBER)
        await self.manager.create_membership(receiver_id, channel.id, MemberRole.MEMBER)
        await self.db.commit()

        logger.info(f"DM channel created: {channel.id} between users {sender_id} and {receiver_id}")
        await self._publish("channel.created", channel.id, {
            "name": channel.name,
            "channel_type": channel.channel_type.value,
            "user_ids": [str(sender_id), str(receiver_id)],
        })
        return channel

    async def get_channel(self, user_id: UUID, channel_id: UUID) -> Channel:
        """Channel details; non-public channels exist only for their members."""
        channel = await self._require_channel(channel_id)
        if not channel.is_public and not await self.access.is_member(user_id, channel_id):
            raise ChannelNotFound(channel_id)
        return channel

    async def get_channel_by_name(self, user_id: UUID, name: str) -> Channel:
        channel = await self.channels.get_by_name(name)
        if channel is None:
            raise ChannelNotFound(name)
        return await self.get_channel(user_id, channel.id)

    async def set_channel_password(self, actor_id: UUID, channel_id: UUID, password: str) -> Channel:
        await self._require_owner(actor_id, channel_id)
        channel = await self.password_gate.set_channel_password(channel_id, password)
        await self.db.commit()
        await self._publish("channel.password_set", channel_id, {"set_by": str(actor_id)})
        return channel

    async def update_channel_password(self, actor_id: UUID, channel_id: UUID, password: str) -> Channel:
        await self._require_owner(actor_id, channel_id)
        channel = await self.password_gate.update_password(channel_id, password)
        await self.db.commit()
        await self._publish("channel.password_updated", channel_id, {"updated_by": str(actor_id)})
        return channel

    # ------------------------------------------------------------------
    # Membership lifecycle
    # ------------------------------------------------------------------

    async def join_channel(
        self, user_id: UUID, channel_id: UUID, password: Optional[str] = None
    ) -> ChannelMember:
        """Join a PUBLIC channel, or a PROTECTED one with its password.

        PRIVATE channels require an invitation; DM channels cannot be joined.
        """
        channel = await self._require_channel(channel_id)

        if channel.channel_type in (ChannelType.PRIVATE, ChannelType.DM):
            logger.warning(f"User {user_id} denied joining {channel.channel_type.value} channel {channel_id}")
            raise PermissionDenied(
                "Can only join public or protected channels. Private channels require invitation."
            )

        if channel.channel_type == ChannelType.PROTECTED:
            if password is None or not await self.password_gate.verify_channel_password(channel, password):
                logger.warning(f"User {user_id} supplied a wrong password for channel {channel_id}")
                raise PermissionDenied("Incorrect channel password")

        member = await self.manager.create_membership(user_id, channel_id, MemberRole.MEMBER)
        await self.db.commit()

        logger.info(f"User {user_id} joined channel {channel_id}")
        await self._publish("member.joined", channel_id, {"user_id": str(user_id)})
        return member

    async def invite_member(self, actor_id: UUID, channel_id: UUID, user_id: UUID) -> ChannelMember:
        """Add another user to a channel.

        The actor must be a member in good standing; PRIVATE channels also
        require the actor to be an owner or admin.
        """
        channel = await self._require_channel(channel_id)
        if channel.is_dm:
            raise InvalidChannelOperation("Cannot add members to direct message channels")

        if not await self.access.can_read(actor_id, channel_id):
            raise PermissionDenied("You are not a member of this channel")
        if channel.channel_type == ChannelType.PRIVATE and not await self.access.can_moderate(
            actor_id, channel_id
        ):
            raise PermissionDenied("Only owners and admins can add members to private channels")

        await self.users.get_profile_by_user_id(user_id)
        member = await self.manager.create_membership(user_id, channel_id, MemberRole.MEMBER)
        await self.db.commit()

        logger.info(f"Member added: user {user_id} to channel {channel_id} by {actor_id}")
        await self._publish("member.added", channel_id, {
            "user_id": str(user_id),
            "added_by": str(actor_id),
        })
        return member

    async def leave_channel(self, user_id: UUID, channel_id: UUID) -> bool:
        """Leave a group channel.

        The emptiness check runs while the leaver's row still exists, so the
        channel goes only when the leaver was its last member; deleting the
        channel removes that row with it.

        Returns:
            True if the channel was deleted because nobody is left
        """
        channel = await self._require_channel(channel_id)
        if channel.is_dm:
            raise InvalidChannelOperation("Cannot leave direct message channels")
        if await self.manager.get_membership(user_id, channel_id) is None:
            raise MembershipNotFound(user_id, channel_id)
        channel_name = channel.name

        deleted = await self.manager.delete_channel_if_empty(channel_id)
        if not deleted:
            await self.manager.delete_membership(user_id, channel_id)
        await self.db.commit()

        logger.info(f"User {user_id} left channel {channel_id}")
        await self._publish("member.left", channel_id, {"user_id": str(user_id)})
        if deleted:
            await self._publish("channel.deleted", channel_id, {"name": channel_name})
        return deleted

    async def kick_member(self, actor_id: UUID, channel_id: UUID, target_id: UUID) -> None:
        await self._require_outranks(actor_id, channel_id, target_id)
        await self.manager.delete_membership(target_id, channel_id)
        await self.db.commit()

        await self._publish("member.removed", channel_id, {
            "user_id": str(target_id),
            "removed_by": str(actor_id),
        })

    async def change_member_role(
        self, actor_id: UUID, channel_id: UUID, target_id: UUID, new_role: MemberRole
    ) -> ChannelMember:
        actor_role = await self._require_outranks(actor_id, channel_id, target_id)
        if not actor_role.outranks(new_role):
            logger.warning(f"User {actor_id} cannot grant role {new_role.value} in channel {channel_id}")
            raise PermissionDenied(f"Cannot grant the {new_role.value} role")

        member = await self.manager.change_role(target_id, channel_id, new_role)
        await self.db.commit()
        await self._publish("member.role_changed", channel_id, {
            "user_id": str(target_id),
            "role": new_role.value,
            "changed_by": str(actor_id),
        })
        return member

    async def set_member_ban(
        self, actor_id: UUID, channel_id: UUID, target_id: UUID, banned: bool
    ) -> ChannelMember:
        await self._require_outranks(actor_id, channel_id, target_id)
        member = await self.manager.set_ban_status(target_id, channel_id, banned)
        await self.db.commit()
        await self._publish("member.ban_changed", channel_id, {
            "user_id": str(target_id),
            "is_banned": banned,
            "changed_by": str(actor_id),
        })
        return member

    async def set_member_mute(
        self, actor_id: UUID, channel_id: UUID, target_id: UUID, muted: bool
    ) -> ChannelMember:
        await self._require_outranks(actor_id, channel_id, target_id)
        member = await self.manager.set_mute_status(target_id, channel_id, muted)
        await self.db.commit()
        await self._publish("member.mute_changed", channel_id, {
            "user_id": str(target_id),
            "is_muted": muted,
            "changed_by": str(actor_id),
        })
        return member

    async def get_membership_state(self, user_id: UUID, channel_id: UUID) -> ChannelMember:
        member = await self.manager.get_membership(user_id, channel_id)
        if member is None:
            raise MembershipNotFound(user_id, channel_id)
        return member

    async def list_members(
        self, user_id: UUID, channel_id: UUID
    ) -> List[Tuple[ChannelMember, User]]:
        """Members with their profiles; empty when the caller is not a member."""
        if not await self.access.is_member(user_id, channel_id):
            return []

        members = await self.manager.list_members(channel_id)
        profiles = await self.users.get_by_predicate(User.id.in_([m.user_id for m in members]))
        by_id = {user.id: user for user in profiles}
        return [(m, by_id[m.user_id]) for m in members if m.user_id in by_id]

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_visible_channels(self, user_id: UUID) -> List[Channel]:
        return await self.directory.list_visible_channels(user_id)

    async def list_joined_group_channels(self, user_id: UUID) -> List[Channel]:
        return await self.directory.list_joined_group_channels(user_id)

    async def list_joined_dm_channels(self, user_id: UUID) -> List[Channel]:
        return await self.directory.list_joined_dm_channels(user_id)

    async def resolve_dm_channel(self, user_id: UUID, other_user_id: UUID) -> Channel:
        channel = await self.directory.resolve_dm_channel(user_id, other_user_id)
        if channel is None:
            raise ChannelNotFound(dm_channel_name(user_id, other_user_id))
        return channel

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def post_message(self, user_id: UUID, channel_id: UUID, content: str) -> Message:
        await self._require_channel(channel_id)
        if not await self.access.can_post(user_id, channel_id):
            logger.warning(f"User {user_id} denied posting to channel {channel_id}")
            raise PermissionDenied("You cannot post to this channel")

        message = await self.messages.create(
            Message(channel_id=channel_id, author_id=user_id, content=content)
        )
        await self.db.commit()
        await self._publish("message.created", channel_id, {
            "message_id": str(message.id),
            "author_id": str(user_id),
        })
        return message

    async def get_messages(self, user_id: UUID, channel_id: UUID) -> List[Message]:
        """Channel history; an empty list for non-members and banned members."""
        if not await self.access.can_read(user_id, channel_id):
            return []
        return await self.messages.list_for_channel(channel_id)

    async def get_dm_messages(self, user_id: UUID, other_user_id: UUID) -> List[Message]:
        channel = await self.directory.resolve_dm_channel(user_id, other_user_id)
        if channel is None:
            return []
        return await self.get_messages(user_id, channel.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_channel(self, channel_id: UUID) -> Channel:
        channel = await self.channels.get_by_id(channel_id)
        if channel is None:
            raise ChannelNotFound(channel_id)
        return channel

    async def _require_owner(self, actor_id: UUID, channel_id: UUID) -> None:
        await self._require_channel(channel_id)
        if not await self.access.is_owner(actor_id, channel_id):
            logger.warning(f"User {actor_id} is not the owner of channel {channel_id}")
            raise PermissionDenied("Only the channel owner can manage the password")

    async def _require_outranks(
        self, actor_id: UUID, channel_id: UUID, target_id: UUID
    ) -> MemberRole:
        """Check the actor may moderate the target and return the actor's role."""
        channel = await self._require_channel(channel_id)
        if channel.is_dm:
            raise InvalidChannelOperation("Direct message channels have no moderation")
        if actor_id == target_id:
            raise PermissionDenied("You cannot moderate yourself")

        if not await self.access.can_moderate(actor_id, channel_id):
            logger.warning(f"User {actor_id} lacks moderation rights in channel {channel_id}")
            raise PermissionDenied("You must be a channel owner or admin to perform this action")

        actor_role = await self.access.get_role(actor_id, channel_id)
        target_role = await self.access.get_role(target_id, channel_id)
        if not actor_role.outranks(target_role):
            logger.warning(
                f"User {actor_id} ({actor_role.value}) cannot moderate "
                f"{target_id} ({target_role.value}) in channel {channel_id}"
            )
            raise PermissionDenied("You cannot moderate a member of equal or higher role")
        return actor_role

    async def _publish(self, event_type: str, channel_id: UUID, data: Dict[str, Any]) -> None:
        await self.publisher.publish_channel_event(
            event_type=event_type,
            channel_data={"channel_id": str(channel_id), **data},
            key=str(channel_id),
        )
