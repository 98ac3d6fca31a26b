"""Shared fixtures: an in-memory SQLite database and the wired core components."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from shared.database import Base, Channel, ChannelType, User, make_session_factory
from services.channel.dependencies import build_channel_service
from services.channel.services.access_control import AccessControl
from services.channel.services.channel_directory import ChannelDirectory
from services.channel.services.membership_manager import MembershipManager
from services.channel.services.password_gate import PasswordGate, SecretHasher
from services.channel.services.stores import (
    ChannelStore,
    MembershipStore,
    MessageStore,
    UserDirectory,
)


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    async with make_session_factory(engine)() as session:
        yield session


@pytest.fixture
def channel_store(db):
    return ChannelStore(db)


@pytest.fixture
def membership_store(db):
    return MembershipStore(db)


@pytest.fixture
def message_store(db):
    return MessageStore(db)


@pytest.fixture
def user_directory(db):
    return UserDirectory(db)


@pytest.fixture
def manager(membership_store, channel_store):
    return MembershipManager(membership_store, channel_store)


@pytest.fixture
def access(membership_store):
    return AccessControl(membership_store)


@pytest.fixture
def directory(channel_store, membership_store, access):
    return ChannelDirectory(channel_store, membership_store, access)


@pytest.fixture
def hasher():
    # Minimum cost keeps the suite fast
    return SecretHasher(rounds=4)


@pytest.fixture
def password_gate(channel_store, hasher):
    return PasswordGate(channel_store, hasher)


@pytest.fixture
def publisher():
    publisher = AsyncMock()
    publisher.publish_channel_event = AsyncMock()
    return publisher


@pytest.fixture
def service(db, publisher, hasher):
    return build_channel_service(db, publisher, hasher)


@pytest.fixture
def make_user(db, user_directory):
    async def _make_user(username: str) -> User:
        user = await user_directory.create(
            User(
                keycloak_id=f"kc-{username}",
                username=username,
                display_name=username.title(),
            )
        )
        await db.commit()
        return user

    return _make_user


@pytest.fixture
def published_events(publisher):
    """Event types handed to the publisher so far, in order."""

    def _published_events() -> list:
        return [
            call.kwargs["event_type"]
            for call in publisher.publish_channel_event.await_args_list
        ]

    return _published_events


@pytest.fixture
def make_channel(db, channel_store):
    async def _make_channel(name: str, channel_type: ChannelType = ChannelType.PUBLIC) -> Channel:
        channel = await channel_store.create(
            Channel(
                name=name,
                channel_type=channel_type,
                is_public=channel_type == ChannelType.PUBLIC,
            )
        )
        await db.commit()
        return channel

    return _make_channel
