"""SQLAlchemy models for the chat backend.

Models are organized by domain:

1. Users: User (profile directory synced from Keycloak)
2. Channels: Channel, ChannelMember
3. Messaging: Message

All models inherit from Base and use the TimestampMixin for automatic
created_at/updated_at tracking.
"""

from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.base import Base, TimestampMixin


# ============================================================================
# Enums
# ============================================================================


class ChannelType(str, PyEnum):
    """Kind of conversation space."""

    PUBLIC = "PUBLIC"
    PROTECTED = "PROTECTED"
    PRIVATE = "PRIVATE"
    DM = "DM"

    @classmethod
    def group_types(cls) -> tuple:
        """Kinds that appear in the group channel directory."""
        return (cls.PUBLIC, cls.PROTECTED, cls.PRIVATE)


class MemberRole(str, PyEnum):
    """Privilege tier of a channel membership."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def outranks(self, other: "MemberRole") -> bool:
        return self.rank > other.rank


_ROLE_RANK = {
    MemberRole.OWNER: 3,
    MemberRole.ADMIN: 2,
    MemberRole.MEMBER: 1,
}


# ============================================================================
# Users
# ============================================================================


class User(Base, TimestampMixin):
    """User profile.

    Profiles are owned by the identity provider; this table is the local
    directory the channel service reads from.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    keycloak_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    username: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )
    display_name: Mapped[Optional[str]] = mapped_column(String(255))
    avatar_url: Mapped[Optional[str]] = mapped_column(String(512))

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"


# ============================================================================
# Channels
# ============================================================================


class Channel(Base, TimestampMixin):
    """Channel model for group channels and direct messages.

    Supports four kinds:
    - PUBLIC: listed and joinable by anyone not banned
    - PROTECTED: joinable with the channel password
    - PRIVATE: invite-only
    - DM: exactly two members, named ``user<A>:user<B>``

    ``password_hash``/``password_salt`` are set iff the channel is PROTECTED.
    """

    __tablename__ = "channels"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    channel_type: Mapped[ChannelType] = mapped_column(
        Enum(ChannelType), default=ChannelType.PUBLIC, nullable=False, index=True
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # bcrypt hash and the salt it was produced with
    password_hash: Mapped[Optional[str]] = mapped_column(String(255))
    password_salt: Mapped[Optional[str]] = mapped_column(String(64))

    created_by_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    @property
    def is_dm(self) -> bool:
        return self.channel_type == ChannelType.DM

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    def __repr__(self) -> str:
        return f"<Channel(id={self.id}, name={self.name}, type={self.channel_type})>"


class ChannelMember(Base, TimestampMixin):
    """Membership of one user in one channel, with role and ban/mute state."""

    __tablename__ = "channel_members"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    channel_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    role: Mapped[MemberRole] = mapped_column(
        Enum(MemberRole), default=MemberRole.MEMBER, nullable=False
    )
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_muted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("channel_id", "user_id", name="uq_channel_members_channel_user"),
        Index("ix_channel_members_channel_id", "channel_id"),
        Index("ix_channel_members_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ChannelMember(channel_id={self.channel_id}, user_id={self.user_id}, "
            f"role={self.role})>"
        )


# ============================================================================
# Messaging
# ============================================================================


class Message(Base, TimestampMixin):
    """A message posted to exactly one channel by one sender."""

    __tablename__ = "messages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    channel_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("ix_messages_channel_id_created_at", "channel_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, channel_id={self.channel_id}, author_id={self.author_id})>"


__all__ = [
    "Base",
    # Enums
    "ChannelType",
    "MemberRole",
    # Models
    "User",
    "Channel",
    "ChannelMember",
    "Message",
]
