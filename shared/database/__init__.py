"""Shared database components for the chat backend.

This package provides:
- Base SQLAlchemy model class
- Database session management
- Channel, membership, message and user models
- Timestamp mixins
"""

from shared.database.base import (
    Base,
    TimestampMixin,
    close_db,
    get_db,
    init_db,
    make_session_factory,
)
from shared.database.models import (
    Channel,
    ChannelMember,
    ChannelType,
    MemberRole,
    Message,
    User,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    # Database functions
    "init_db",
    "get_db",
    "close_db",
    "make_session_factory",
    # Enums
    "ChannelType",
    "MemberRole",
    # Models
    "User",
    "Channel",
    "ChannelMember",
    "Message",
]
