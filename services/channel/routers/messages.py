"""Message endpoints for channels and direct messages."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from shared.database import Message, User

from ..dependencies import get_channel_service, get_current_user
from ..services.channel_service import ChannelService

router = APIRouter()


class MessageCreate(BaseModel):
    """Request model for creating a message."""

    content: str = Field(..., min_length=1, max_length=4000, description="Message content")


class MessageResponse(BaseModel):
    """Response model for a message."""

    id: UUID
    channel_id: UUID
    author_id: Optional[UUID] = None
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
    total: int


def to_message_list(messages: List[Message]) -> MessageListResponse:
    return MessageListResponse(
        messages=[MessageResponse.model_validate(m) for m in messages],
        total=len(messages),
    )


@router.post(
    "/channels/{channel_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_message(
    channel_id: UUID,
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Post a message. Banned and muted members cannot post."""
    message = await service.post_message(current_user.id, channel_id, message_data.content)
    return MessageResponse.model_validate(message)


@router.get("/channels/{channel_id}/messages", response_model=MessageListResponse)
async def get_channel_messages(
    channel_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Channel history, oldest first. Empty for non-members and banned members."""
    return to_message_list(await service.get_messages(current_user.id, channel_id))


@router.get("/channels/dm/{other_user_id}/messages", response_model=MessageListResponse)
async def get_dm_messages(
    other_user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    return to_message_list(await service.get_dm_messages(current_user.id, other_user_id))
