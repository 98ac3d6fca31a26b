"""
Error types for the channel service.

- ChannelServiceError: Base exception
- NotFound: Referenced channel, membership or user does not exist
- DuplicateMembership: (user, channel) pair already has a membership
- ChannelNameTaken: Channel name already in use
- PermissionDenied: Caller lacks the role or state for the action
- InvalidChannelOperation: Action does not apply to this kind of channel

None of these are retried inside the service; the transport layer maps
them to responses.
"""

from typing import Any, Dict, Optional
from uuid import UUID


class ChannelServiceError(Exception):
    """Base exception for channel service errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    code = "CHANNEL_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(ChannelServiceError):
    """A referenced channel, membership or user does not exist."""

    code = "NOT_FOUND"


class ChannelNotFound(NotFound):
    code = "CHANNEL_NOT_FOUND"

    def __init__(self, channel_id: Any) -> None:
        super().__init__(
            f"channel {channel_id} not found",
            details={"channel_id": str(channel_id)},
        )
        self.channel_id = channel_id


class MembershipNotFound(NotFound):
    code = "MEMBERSHIP_NOT_FOUND"

    def __init__(self, user_id: UUID, channel_id: UUID) -> None:
        super().__init__(
            f"user {user_id} not found in channel {channel_id}",
            details={"user_id": str(user_id), "channel_id": str(channel_id)},
        )
        self.user_id = user_id
        self.channel_id = channel_id


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: Any) -> None:
        super().__init__(f"user {user_id} not found", details={"user_id": str(user_id)})
        self.user_id = user_id


class DuplicateMembership(ChannelServiceError):
    """The user already has a membership in the channel.

    Callers should read this as "already joined", not as a fault.
    """

    code = "DUPLICATE_MEMBERSHIP"

    def __init__(self, user_id: UUID, channel_id: UUID) -> None:
        super().__init__(
            f"user {user_id} is already a member of channel {channel_id}",
            details={"user_id": str(user_id), "channel_id": str(channel_id)},
        )
        self.user_id = user_id
        self.channel_id = channel_id


class ChannelNameTaken(ChannelServiceError):
    code = "CHANNEL_NAME_TAKEN"

    def __init__(self, name: str) -> None:
        super().__init__(f"channel {name} already exists", details={"name": name})
        self.name = name


class PermissionDenied(ChannelServiceError):
    code = "PERMISSION_DENIED"


class InvalidChannelOperation(ChannelServiceError):
    code = "INVALID_CHANNEL_OPERATION"
