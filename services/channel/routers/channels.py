"""Channel management endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from shared.database import Channel, ChannelType, User

from ..dependencies import get_channel_service, get_current_user
from ..services.channel_service import ChannelService

router = APIRouter()


# Request/Response Models
class ChannelCreate(BaseModel):
    """Request model for creating a group or private channel."""

    name: str = Field(..., min_length=1, max_length=80)
    channel_type: ChannelType = ChannelType.PUBLIC
    password: Optional[str] = Field(None, min_length=1, max_length=72)


class DMChannelCreate(BaseModel):
    """Request model for creating a DM channel."""

    other_user_id: UUID


class ChannelPassword(BaseModel):
    password: str = Field(..., min_length=1, max_length=72)


class ChannelResponse(BaseModel):
    """Response model for a channel."""

    id: UUID
    name: str
    channel_type: ChannelType
    is_public: bool
    has_password: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ChannelListResponse(BaseModel):
    """Response model for a list of channels."""

    channels: List[ChannelResponse]
    total: int


def to_channel_list(channels: List[Channel]) -> ChannelListResponse:
    return ChannelListResponse(
        channels=[ChannelResponse.model_validate(c) for c in channels],
        total=len(channels),
    )


# Endpoints
@router.post("/channels", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def create_channel(
    channel_data: ChannelCreate,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Create a new channel.

    - PUBLIC channels can be joined by anyone
    - PROTECTED channels require the password given here
    - PRIVATE channels require invitation
    - Creator becomes the channel owner
    """
    if channel_data.channel_type == ChannelType.DM:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use /channels/dm to open a direct message channel",
        )

    if channel_data.channel_type == ChannelType.PRIVATE:
        if channel_data.password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Private channels cannot be password protected",
            )
        channel = await service.create_private_channel(current_user.id, channel_data.name)
    else:
        if channel_data.channel_type == ChannelType.PROTECTED and not channel_data.password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Protected channels require a password",
            )
        channel = await service.create_group_channel(
            current_user.id, channel_data.name, password=channel_data.password
        )

    return ChannelResponse.model_validate(channel)


@router.post("/channels/dm", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def create_dm_channel(
    dm_data: DMChannelCreate,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Create or get a direct message channel between two users."""
    channel = await service.create_dm_channel(current_user.id, dm_data.other_user_id)
    return ChannelResponse.model_validate(channel)


@router.get("/channels", response_model=ChannelListResponse)
async def list_visible_channels(
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """List the group channels visible to the current user."""
    return to_channel_list(await service.list_visible_channels(current_user.id))


@router.get("/channels/joined", response_model=ChannelListResponse)
async def list_joined_channels(
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """List public and protected channels the current user belongs to."""
    return to_channel_list(await service.list_joined_group_channels(current_user.id))


@router.get("/channels/dm", response_model=ChannelListResponse)
async def list_dm_channels(
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    return to_channel_list(await service.list_joined_dm_channels(current_user.id))


@router.get("/channels/dm/{other_user_id}", response_model=ChannelResponse)
async def get_dm_channel(
    other_user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    channel = await service.resolve_dm_channel(current_user.id, other_user_id)
    return ChannelResponse.model_validate(channel)


@router.get("/channels/by-name/{name}", response_model=ChannelResponse)
async def get_channel_by_name(
    name: str,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    channel = await service.get_channel_by_name(current_user.id, name)
    return ChannelResponse.model_validate(channel)


@router.get("/channels/{channel_id}", response_model=ChannelResponse)
async def get_channel(
    channel_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    channel = await service.get_channel(current_user.id, channel_id)
    return ChannelResponse.model_validate(channel)


@router.post("/channels/{channel_id}/password", response_model=ChannelResponse)
async def set_channel_password(
    channel_id: UUID,
    body: ChannelPassword,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Protect a channel with a password. Owner only."""
    channel = await service.set_channel_password(current_user.id, channel_id, body.password)
    return ChannelResponse.model_validate(channel)


@router.put("/channels/{channel_id}/password", response_model=ChannelResponse)
async def update_channel_password(
    channel_id: UUID,
    body: ChannelPassword,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Replace the channel password. Owner only."""
    channel = await service.update_channel_password(current_user.id, channel_id, body.password)
    return ChannelResponse.model_validate(channel)
