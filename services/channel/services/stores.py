"""Persistence stores for channels, memberships, messages and user profiles.

Each store wraps the request-scoped ``AsyncSession`` it is constructed with
and exposes the generic create / get_by_id / get_by_predicate / save /
delete capability plus a few entity-specific lookups. Uniqueness
invariants are enforced by database constraints; the stores translate
constraint violations into domain errors.

Stores flush but never commit: the caller owns the transaction, so a
multi-step operation either lands as a whole or not at all. A constraint
violation rolls the whole transaction back before the domain error is
raised.
"""

import logging
from typing import Generic, List, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import Base, Channel, ChannelMember, ChannelType, Message, User

from ..errors import ChannelNameTaken, DuplicateMembership, UserNotFound

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class SqlAlchemyStore(Generic[ModelT]):
    """Generic repository over one mapped model."""

    model: Type[ModelT]

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def get_by_id(self, entity_id: UUID) -> Optional[ModelT]:
        return await self.db.get(self.model, entity_id)

    async def get_by_predicate(self, *criteria, order_by=()) -> List[ModelT]:
        """Return every row matching all of ``criteria``."""
        stmt = select(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        if order_by:
            stmt = stmt.order_by(*order_by)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def save(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.db.delete(entity)
        await self.db.flush()


class MembershipStore(SqlAlchemyStore[ChannelMember]):
    """One row per (user, channel) pair."""

    model = ChannelMember

    async def get(self, user_id: UUID, channel_id: UUID) -> Optional[ChannelMember]:
        stmt = select(ChannelMember).where(
            ChannelMember.channel_id == channel_id,
            ChannelMember.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, entity: ChannelMember) -> ChannelMember:
        """Insert a membership.

        The unique constraint on (channel_id, user_id) is the arbiter when
        two requests race past the existence check.
        """
        if await self.get(entity.user_id, entity.channel_id) is not None:
            raise DuplicateMembership(entity.user_id, entity.channel_id)

        self.db.add(entity)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            if await self.get(entity.user_id, entity.channel_id) is not None:
                raise DuplicateMembership(entity.user_id, entity.channel_id)
            raise
        await self.db.refresh(entity)
        return entity

    async def list_for_channel(self, channel_id: UUID) -> List[ChannelMember]:
        return await self.get_by_predicate(
            ChannelMember.channel_id == channel_id,
            order_by=(ChannelMember.created_at,),
        )

    async def list_for_user(
        self, user_id: UUID, banned: Optional[bool] = None
    ) -> List[ChannelMember]:
        criteria = [ChannelMember.user_id == user_id]
        if banned is not None:
            criteria.append(ChannelMember.is_banned == banned)
        return await self.get_by_predicate(
            *criteria, order_by=(ChannelMember.created_at,)
        )

    async def count_for_channel(self, channel_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(ChannelMember)
            .where(ChannelMember.channel_id == channel_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()


class ChannelStore(SqlAlchemyStore[Channel]):
    """Channel metadata."""

    model = Channel

    async def get_by_name(self, name: str) -> Optional[Channel]:
        stmt = select(Channel).where(Channel.name == name)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, entity: Channel) -> Channel:
        if await self.get_by_name(entity.name) is not None:
            raise ChannelNameTaken(entity.name)

        self.db.add(entity)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            if await self.get_by_name(entity.name) is not None:
                raise ChannelNameTaken(entity.name)
            raise
        await self.db.refresh(entity)
        return entity

    async def list_group_channels(self) -> List[Channel]:
        """All non-DM channels in creation order."""
        return await self.get_by_predicate(
            Channel.channel_type.in_(ChannelType.group_types()),
            order_by=(Channel.created_at,),
        )

    async def list_by_ids(self, channel_ids: List[UUID]) -> List[Channel]:
        if not channel_ids:
            return []
        channels = await self.get_by_predicate(Channel.id.in_(channel_ids))
        by_id = {channel.id: channel for channel in channels}
        return [by_id[channel_id] for channel_id in channel_ids if channel_id in by_id]

    async def delete(self, entity: Channel) -> None:
        """Delete the channel together with its memberships and messages."""
        channel_id = entity.id
        await self.db.execute(delete(Message).where(Message.channel_id == channel_id))
        await self.db.execute(
            delete(ChannelMember).where(ChannelMember.channel_id == channel_id)
        )
        await self.db.delete(entity)
        await self.db.flush()
        logger.debug(f"Deleted channel row {channel_id} with its memberships and messages")


class MessageStore(SqlAlchemyStore[Message]):
    model = Message

    async def list_for_channel(self, channel_id: UUID) -> List[Message]:
        return await self.get_by_predicate(
            Message.channel_id == channel_id,
            order_by=(Message.created_at,),
        )


class UserDirectory(SqlAlchemyStore[User]):
    """Read access to user profiles."""

    model = User

    async def get_profile_by_user_id(self, user_id: UUID) -> User:
        user = await self.get_by_id(user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    async def get_by_keycloak_id(self, keycloak_id: str) -> Optional[User]:
        stmt = select(User).where(User.keycloak_id == keycloak_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
