"""
Unit tests for MembershipManager.

Tests cover:
- Membership creation and the one-row-per-(user, channel) invariant
- Removal, role changes, ban and mute transitions
- Channel deletion once the last member is gone
"""

import pytest

from shared.database import MemberRole, Message
from services.channel.errors import DuplicateMembership, MembershipNotFound


class TestCreateMembership:
    async def test_create_membership_makes_user_member(self, manager, access, make_user, make_channel):
        user = await make_user("alice")
        channel = await make_channel("general")

        member = await manager.create_membership(user.id, channel.id, MemberRole.OWNER)

        assert member.role == MemberRole.OWNER
        assert member.is_banned is False
        assert member.is_muted is False
        assert await access.is_member(user.id, channel.id) is True

    async def test_second_membership_for_same_pair_is_rejected(self, manager, make_user, make_channel):
        user = await make_user("alice")
        channel = await make_channel("general")
        await manager.create_membership(user.id, channel.id, MemberRole.MEMBER)

        with pytest.raises(DuplicateMembership):
            await manager.create_membership(user.id, channel.id, MemberRole.ADMIN)

        members = await manager.list_members(channel.id)
        assert len(members) == 1
        assert members[0].role == MemberRole.MEMBER

    async def test_unique_constraint_catches_racing_insert(
        self, db, manager, membership_store, make_user, make_channel, monkeypatch
    ):
        """A request that passed the existence check still loses to the constraint."""
        user = await make_user("alice")
        channel = await make_channel("general")
        user_id, channel_id = user.id, channel.id
        await manager.create_membership(user_id, channel_id)
        await db.commit()

        original_get = membership_store.get
        calls = []

        async def racing_get(uid, cid):
            calls.append((uid, cid))
            if len(calls) == 1:
                return None
            return await original_get(uid, cid)

        monkeypatch.setattr(membership_store, "get", racing_get)

        with pytest.raises(DuplicateMembership):
            await manager.create_membership(user_id, channel_id)
        assert len(calls) == 2

    async def test_same_user_can_join_different_channels(self, manager, make_user, make_channel):
        user = await make_user("alice")
        first = await make_channel("general")
        second = await make_channel("random")

        await manager.create_membership(user.id, first.id)
        await manager.create_membership(user.id, second.id)

        assert await manager.get_membership(user.id, first.id) is not None
        assert await manager.get_membership(user.id, second.id) is not None


class TestMembershipMutations:
    async def test_delete_membership(self, manager, access, make_user, make_channel):
        user = await make_user("alice")
        channel = await make_channel("general")
        await manager.create_membership(user.id, channel.id)

        await manager.delete_membership(user.id, channel.id)

        assert await access.is_member(user.id, channel.id) is False

    async def test_delete_missing_membership_raises_not_found(self, manager, make_user, make_channel):
        user = await make_user("alice")
        channel = await make_channel("general")

        with pytest.raises(MembershipNotFound):
            await manager.delete_membership(user.id, channel.id)

    async def test_change_role_overwrites_role(self, manager, make_user, make_channel):
        user = await make_user("alice")
        channel = await make_channel("general")
        await manager.create_membership(user.id, channel.id)

        member = await manager.change_role(user.id, channel.id, MemberRole.ADMIN)

        assert member.role == MemberRole.ADMIN
        assert (await manager.get_membership(user.id, channel.id)).role == MemberRole.ADMIN

    async def test_change_role_without_membership_raises_not_found(self, manager, make_user, make_channel):
        user = await make_user("alice")
        channel = await make_channel("general")

        with pytest.raises(MembershipNotFound):
            await manager.change_role(user.id, channel.id, MemberRole.ADMIN)

    async def test_set_ban_status(self, manager, access, make_user, make_channel):
        user = await make_user("alice")
        channel = await make_channel("general")
        await manager.create_membership(user.id, channel.id)

        await manager.set_ban_status(user.id, channel.id, True)
        assert await access.is_banned(user.id, channel.id) is True

        await manager.set_ban_status(user.id, channel.id, False)
        assert await access.is_banned(user.id, channel.id) is False

    async def test_ban_and_mute_require_membership(self, manager, make_user, make_channel):
        user = await make_user("alice")
        channel = await make_channel("general")

        with pytest.raises(MembershipNotFound):
            await manager.set_ban_status(user.id, channel.id, True)
        with pytest.raises(MembershipNotFound):
            await manager.set_mute_status(user.id, channel.id, True)

    async def test_set_mute_status_does_not_alter_ban(self, manager, make_user, make_channel):
        """Mute and ban are independent flags."""
        user = await make_user("alice")
        channel = await make_channel("general")
        await manager.create_membership(user.id, channel.id)

        member = await manager.set_mute_status(user.id, channel.id, True)
        assert member.is_muted is True
        assert member.is_banned is False

        await manager.set_ban_status(user.id, channel.id, True)
        member = await manager.set_mute_status(user.id, channel.id, False)
        assert member.is_muted is False
        assert member.is_banned is True


class TestDeleteChannelIfEmpty:
    async def test_channel_deleted_after_last_membership_removed(
        self, manager, channel_store, make_user, make_channel
    ):
        user = await make_user("alice")
        channel = await make_channel("general")
        channel_id = channel.id
        await manager.create_membership(user.id, channel_id, MemberRole.OWNER)

        await manager.delete_membership(user.id, channel_id)
        deleted = await manager.delete_channel_if_empty(channel_id)

        assert deleted is True
        assert await channel_store.get_by_id(channel_id) is None
        assert await channel_store.get_by_name("general") is None
        assert all(c.id != channel_id for c in await channel_store.list_group_channels())

    async def test_single_remaining_row_counts_as_empty(
        self, manager, channel_store, membership_store, make_user, make_channel
    ):
        user = await make_user("alice")
        channel = await make_channel("general")
        channel_id = channel.id
        await manager.create_membership(user.id, channel_id, MemberRole.OWNER)

        assert await manager.delete_channel_if_empty(channel_id) is True
        assert await channel_store.get_by_id(channel_id) is None
        assert await membership_store.count_for_channel(channel_id) == 0

    async def test_channel_with_members_is_kept(self, manager, channel_store, make_user, make_channel):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        channel = await make_channel("general")
        for user in (alice, bob, carol):
            await manager.create_membership(user.id, channel.id)

        await manager.delete_membership(carol.id, channel.id)

        assert await manager.delete_channel_if_empty(channel.id) is False
        assert await channel_store.get_by_id(channel.id) is not None

    async def test_messages_removed_with_channel(
        self, manager, message_store, make_user, make_channel
    ):
        user = await make_user("alice")
        channel = await make_channel("general")
        channel_id = channel.id
        await manager.create_membership(user.id, channel_id)
        await message_store.create(Message(channel_id=channel_id, author_id=user.id, content="hi"))

        await manager.delete_membership(user.id, channel_id)
        await manager.delete_channel_if_empty(channel_id)

        assert await message_store.list_for_channel(channel_id) == []

    async def test_unknown_channel_is_not_deleted(self, manager):
        from uuid import uuid4

        assert await manager.delete_channel_if_empty(uuid4()) is False
