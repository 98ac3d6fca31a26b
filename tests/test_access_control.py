"""Unit tests for AccessControl predicates."""

import pytest

from shared.database import MemberRole
from services.channel.errors import MembershipNotFound


@pytest.fixture
async def channel(make_channel):
    return await make_channel("general")


@pytest.fixture
async def alice(make_user):
    return await make_user("alice")


class TestMembershipPredicates:
    async def test_non_member_predicates(self, access, alice, channel):
        assert await access.is_member(alice.id, channel.id) is False
        assert await access.is_banned(alice.id, channel.id) is False
        assert await access.is_muted(alice.id, channel.id) is False
        assert await access.can_read(alice.id, channel.id) is False
        assert await access.can_post(alice.id, channel.id) is False

    async def test_banned_user_is_still_a_member(self, access, manager, alice, channel):
        await manager.create_membership(alice.id, channel.id)
        await manager.set_ban_status(alice.id, channel.id, True)

        assert await access.is_member(alice.id, channel.id) is True
        assert await access.is_banned(alice.id, channel.id) is True
        assert await access.can_read(alice.id, channel.id) is False
        assert await access.can_post(alice.id, channel.id) is False

    async def test_muted_member_can_read_but_not_post(self, access, manager, alice, channel):
        await manager.create_membership(alice.id, channel.id)
        await manager.set_mute_status(alice.id, channel.id, True)

        assert await access.is_muted(alice.id, channel.id) is True
        assert await access.can_read(alice.id, channel.id) is True
        assert await access.can_post(alice.id, channel.id) is False


class TestRolePredicates:
    async def test_owner_is_not_admin(self, access, manager, alice, channel):
        await manager.create_membership(alice.id, channel.id, MemberRole.OWNER)

        assert await access.is_owner(alice.id, channel.id) is True
        assert await access.is_admin(alice.id, channel.id) is False
        assert await access.get_role(alice.id, channel.id) == MemberRole.OWNER

    async def test_admin_is_not_owner(self, access, manager, alice, channel):
        await manager.create_membership(alice.id, channel.id, MemberRole.ADMIN)

        assert await access.is_owner(alice.id, channel.id) is False
        assert await access.is_admin(alice.id, channel.id) is True

    async def test_role_checks_require_membership(self, access, alice, channel):
        with pytest.raises(MembershipNotFound):
            await access.is_owner(alice.id, channel.id)
        with pytest.raises(MembershipNotFound):
            await access.is_admin(alice.id, channel.id)
        with pytest.raises(MembershipNotFound):
            await access.get_role(alice.id, channel.id)

    @pytest.mark.parametrize(
        "role,expected",
        [
            (MemberRole.OWNER, True),
            (MemberRole.ADMIN, True),
            (MemberRole.MEMBER, False),
        ],
    )
    async def test_can_moderate_by_role(self, access, manager, alice, channel, role, expected):
        await manager.create_membership(alice.id, channel.id, role)

        assert await access.can_moderate(alice.id, channel.id) is expected

    async def test_banned_admin_cannot_moderate(self, access, manager, alice, channel):
        await manager.create_membership(alice.id, channel.id, MemberRole.ADMIN)
        await manager.set_ban_status(alice.id, channel.id, True)

        assert await access.can_moderate(alice.id, channel.id) is False


class TestRoleRanking:
    def test_outranks(self):
        assert MemberRole.OWNER.outranks(MemberRole.ADMIN)
        assert MemberRole.ADMIN.outranks(MemberRole.MEMBER)
        assert not MemberRole.ADMIN.outranks(MemberRole.ADMIN)
        assert not MemberRole.MEMBER.outranks(MemberRole.OWNER)
