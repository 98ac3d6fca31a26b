"""Common dependencies for Channel Service."""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import User, get_db

from .config import Settings, settings
from .services.access_control import AccessControl
from .services.channel_directory import ChannelDirectory
from .services.channel_service import ChannelService
from .services.membership_manager import MembershipManager
from .services.password_gate import PasswordGate, SecretHasher
from .services.stores import ChannelStore, MembershipStore, MessageStore, UserDirectory


def get_settings() -> Settings:
    return settings


async def get_current_user_id(request: Request) -> str:
    """Get the caller's Keycloak id from authentication middleware.

    This is set by the AuthMiddleware after decoding the JWT token.
    """
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user_id


async def get_current_user(
    keycloak_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from the profile directory."""
    user = await UserDirectory(db).get_by_keycloak_id(keycloak_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


def get_event_publisher(request: Request):
    """Kafka producer started by the application lifespan."""
    return request.app.state.kafka_producer


def get_channel_service(
    db: AsyncSession = Depends(get_db),
    publisher=Depends(get_event_publisher),
    app_settings: Settings = Depends(get_settings),
) -> ChannelService:
    """Wire the channel service for one request around its session."""
    return build_channel_service(
        db, publisher, SecretHasher(rounds=app_settings.bcrypt_rounds)
    )


def build_channel_service(db: AsyncSession, publisher, hasher: SecretHasher) -> ChannelService:
    channels = ChannelStore(db)
    memberships = MembershipStore(db)
    access = AccessControl(memberships)
    return ChannelService(
        db=db,
        channels=channels,
        messages=MessageStore(db),
        users=UserDirectory(db),
        manager=MembershipManager(memberships, channels),
        access=access,
        directory=ChannelDirectory(channels, memberships, access),
        password_gate=PasswordGate(channels, hasher),
        publisher=publisher,
    )
