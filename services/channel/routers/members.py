"""Channel membership management endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from shared.database import ChannelMember, MemberRole, User

from ..dependencies import get_channel_service, get_current_user
from ..services.channel_service import ChannelService

router = APIRouter()


# Request/Response Models
class JoinRequest(BaseModel):
    """Request model for joining a channel."""

    password: Optional[str] = Field(None, max_length=72)


class MemberAdd(BaseModel):
    """Request model for adding a member to a channel."""

    user_id: UUID


class RoleUpdate(BaseModel):
    role: MemberRole


class BanUpdate(BaseModel):
    banned: bool


class MuteUpdate(BaseModel):
    muted: bool


class MemberResponse(BaseModel):
    """Response model for a channel member."""

    user_id: UUID
    channel_id: UUID
    role: MemberRole
    is_banned: bool
    is_muted: bool
    created_at: datetime
    username: Optional[str] = None
    display_name: Optional[str] = None


class MemberListResponse(BaseModel):
    """Response model for a list of members."""

    members: List[MemberResponse]
    total: int


class LeaveResponse(BaseModel):
    channel_deleted: bool


def to_member_response(member: ChannelMember, user: Optional[User] = None) -> MemberResponse:
    return MemberResponse(
        user_id=member.user_id,
        channel_id=member.channel_id,
        role=member.role,
        is_banned=member.is_banned,
        is_muted=member.is_muted,
        created_at=member.created_at,
        username=user.username if user else None,
        display_name=user.display_name if user else None,
    )


# Endpoints
@router.post(
    "/channels/{channel_id}/join",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_channel(
    channel_id: UUID,
    join_data: Optional[JoinRequest] = None,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Join a public channel, or a protected one with its password.

    PRIVATE channels require invitation.
    """
    password = join_data.password if join_data else None
    member = await service.join_channel(current_user.id, channel_id, password=password)
    return to_member_response(member, current_user)


@router.post("/channels/{channel_id}/leave", response_model=LeaveResponse)
async def leave_channel(
    channel_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Leave a channel. The channel is deleted when nobody is left.

    Cannot leave DM channels.
    """
    deleted = await service.leave_channel(current_user.id, channel_id)
    return LeaveResponse(channel_deleted=deleted)


@router.post(
    "/channels/{channel_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    channel_id: UUID,
    member_data: MemberAdd,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Add a member to a channel.

    For PRIVATE channels only owners and admins can add members.
    """
    member = await service.invite_member(current_user.id, channel_id, member_data.user_id)
    return to_member_response(member)


@router.get("/channels/{channel_id}/members", response_model=MemberListResponse)
async def list_members(
    channel_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """List all members of a channel. Empty unless the caller is a member."""
    pairs = await service.list_members(current_user.id, channel_id)
    members = [to_member_response(member, user) for member, user in pairs]
    return MemberListResponse(members=members, total=len(members))


@router.get("/channels/{channel_id}/members/me", response_model=MemberResponse)
async def get_my_membership(
    channel_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    member = await service.get_membership_state(current_user.id, channel_id)
    return to_member_response(member, current_user)


@router.put("/channels/{channel_id}/members/{user_id}/role", response_model=MemberResponse)
async def update_member_role(
    channel_id: UUID,
    user_id: UUID,
    role_update: RoleUpdate,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    member = await service.change_member_role(
        current_user.id, channel_id, user_id, role_update.role
    )
    return to_member_response(member)


@router.put("/channels/{channel_id}/members/{user_id}/ban", response_model=MemberResponse)
async def update_member_ban(
    channel_id: UUID,
    user_id: UUID,
    ban_update: BanUpdate,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    member = await service.set_member_ban(current_user.id, channel_id, user_id, ban_update.banned)
    return to_member_response(member)


@router.put("/channels/{channel_id}/members/{user_id}/mute", response_model=MemberResponse)
async def update_member_mute(
    channel_id: UUID,
    user_id: UUID,
    mute_update: MuteUpdate,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    member = await service.set_member_mute(current_user.id, channel_id, user_id, mute_update.muted)
    return to_member_response(member)


@router.delete(
    "/channels/{channel_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def remove_member(
    channel_id: UUID,
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChannelService = Depends(get_channel_service),
):
    """Remove another member from a channel. Owners and admins only."""
    await service.kick_member(current_user.id, channel_id, user_id)
