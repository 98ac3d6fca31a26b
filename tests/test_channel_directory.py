"""Unit tests for ChannelDirectory listings and DM resolution."""

from shared.database import ChannelType, MemberRole
from services.channel.services.channel_directory import dm_channel_name


def names(channels):
    return [c.name for c in channels]


class TestVisibleChannels:
    async def test_public_channels_visible_to_non_members(self, directory, make_user, make_channel):
        alice = await make_user("alice")
        await make_channel("general")
        await make_channel("random")

        assert names(await directory.list_visible_channels(alice.id)) == ["general", "random"]

    async def test_banned_user_does_not_see_public_channel(
        self, directory, manager, make_user, make_channel
    ):
        alice = await make_user("alice")
        bob = await make_user("bob")
        general = await make_channel("general")
        await make_channel("random")
        await manager.create_membership(alice.id, general.id, MemberRole.OWNER)
        await manager.create_membership(bob.id, general.id)
        await manager.set_ban_status(bob.id, general.id, True)

        assert names(await directory.list_visible_channels(bob.id)) == ["random"]
        assert names(await directory.list_visible_channels(alice.id)) == ["general", "random"]

    async def test_non_public_channels_visible_to_members_only(
        self, directory, manager, make_user, make_channel
    ):
        alice = await make_user("alice")
        bob = await make_user("bob")
        secret = await make_channel("secret", ChannelType.PRIVATE)
        vault = await make_channel("vault", ChannelType.PROTECTED)
        await manager.create_membership(alice.id, secret.id, MemberRole.OWNER)
        await manager.create_membership(alice.id, vault.id, MemberRole.OWNER)

        assert names(await directory.list_visible_channels(alice.id)) == ["secret", "vault"]
        assert await directory.list_visible_channels(bob.id) == []

    async def test_dm_channels_never_listed(self, directory, manager, make_user, make_channel):
        alice = await make_user("alice")
        bob = await make_user("bob")
        dm = await make_channel(dm_channel_name(alice.id, bob.id), ChannelType.DM)
        await manager.create_membership(alice.id, dm.id)
        await manager.create_membership(bob.id, dm.id)

        assert await directory.list_visible_channels(alice.id) == []


class TestJoinedChannels:
    async def test_joined_group_channels(self, directory, manager, make_user, make_channel):
        alice = await make_user("alice")
        bob = await make_user("bob")
        general = await make_channel("general")
        vault = await make_channel("vault", ChannelType.PROTECTED)
        secret = await make_channel("secret", ChannelType.PRIVATE)
        dm = await make_channel(dm_channel_name(alice.id, bob.id), ChannelType.DM)
        await make_channel("random")
        for channel in (general, vault, secret, dm):
            await manager.create_membership(alice.id, channel.id)

        assert names(await directory.list_joined_group_channels(alice.id)) == ["general", "vault"]

    async def test_banned_memberships_excluded_from_joined(
        self, directory, manager, make_user, make_channel
    ):
        alice = await make_user("alice")
        general = await make_channel("general")
        random = await make_channel("random")
        await manager.create_membership(alice.id, general.id)
        await manager.create_membership(alice.id, random.id)
        await manager.set_ban_status(alice.id, general.id, True)

        assert names(await directory.list_joined_group_channels(alice.id)) == ["random"]

    async def test_joined_dm_channels(self, directory, manager, make_user, make_channel):
        alice = await make_user("alice")
        bob = await make_user("bob")
        carol = await make_user("carol")
        general = await make_channel("general")
        with_bob = await make_channel(dm_channel_name(alice.id, bob.id), ChannelType.DM)
        with_carol = await make_channel(dm_channel_name(carol.id, alice.id), ChannelType.DM)
        for channel in (general, with_bob, with_carol):
            await manager.create_membership(alice.id, channel.id)

        dms = await directory.list_joined_dm_channels(alice.id)

        assert [c.id for c in dms] == [with_bob.id, with_carol.id]
        assert await directory.list_joined_dm_channels(bob.id) == []


class TestResolveDmChannel:
    async def test_resolution_ignores_argument_order(self, directory, make_user, make_channel):
        alice = await make_user("alice")
        bob = await make_user("bob")
        dm = await make_channel(dm_channel_name(alice.id, bob.id), ChannelType.DM)

        assert (await directory.resolve_dm_channel(alice.id, bob.id)).id == dm.id
        assert (await directory.resolve_dm_channel(bob.id, alice.id)).id == dm.id

    async def test_no_dm_between_users(self, directory, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")

        assert await directory.resolve_dm_channel(alice.id, bob.id) is None

    async def test_group_channel_with_dm_name_is_ignored(self, directory, make_user, make_channel):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await make_channel(dm_channel_name(alice.id, bob.id), ChannelType.PUBLIC)

        assert await directory.resolve_dm_channel(alice.id, bob.id) is None

    def test_dm_channel_name_format(self):
        assert dm_channel_name("a", "b") == "usera:userb"
