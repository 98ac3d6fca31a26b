"""Password protection for PROTECTED channels."""

import asyncio
import logging
from uuid import UUID

import bcrypt

from shared.database import Channel, ChannelType

from ..errors import ChannelNotFound, InvalidChannelOperation
from .stores import ChannelStore

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a secret
BCRYPT_MAX_SECRET_BYTES = 72


class SecretHasher:
    """bcrypt salt generation, hashing and comparison.

    Hashing is CPU bound, so every call runs in a worker thread.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    async def gen_salt(self) -> str:
        salt = await asyncio.to_thread(bcrypt.gensalt, rounds=self.rounds)
        return salt.decode("ascii")

    async def hash(self, secret: str, salt: str) -> str:
        hashed = await asyncio.to_thread(
            bcrypt.hashpw, self._encode(secret), salt.encode("ascii")
        )
        return hashed.decode("ascii")

    async def compare(self, secret: str, hashed: str) -> bool:
        return await asyncio.to_thread(
            bcrypt.checkpw, self._encode(secret), hashed.encode("ascii")
        )

    @staticmethod
    def _encode(secret: str) -> bytes:
        return secret.encode("utf-8")[:BCRYPT_MAX_SECRET_BYTES]


class PasswordGate:
    """Sets channel passwords and verifies supplied secrets against them."""

    def __init__(self, channels: ChannelStore, hasher: SecretHasher):
        self.channels = channels
        self.hasher = hasher

    async def verify_channel_password(self, channel: Channel, supplied_secret: str) -> bool:
        """True iff the secret matches the channel's stored hash.

        A mismatch, or a channel without a password, is a plain False.
        """
        if not channel.password_hash:
            return False
        return await self.hasher.compare(supplied_secret, channel.password_hash)

    async def set_channel_password(self, channel_id: UUID, new_secret: str) -> Channel:
        """Protect a group channel with a password.

        The channel becomes PROTECTED and drops out of public visibility.

        Raises:
            ChannelNotFound: unknown channel id
            InvalidChannelOperation: DM and PRIVATE channels cannot carry a password
        """
        channel = await self._protect(channel_id, new_secret)
        logger.info(f"Password set on channel {channel_id}; channel is now protected")
        return channel

    async def update_password(self, channel_id: UUID, new_secret: str) -> Channel:
        """Replace the channel password, hashed with a fresh salt.

        Same effect and refusals as ``set_channel_password``: an unprotected
        PUBLIC channel becomes PROTECTED here too.
        """
        channel = await self._protect(channel_id, new_secret)
        logger.info(f"Password updated on channel {channel_id}")
        return channel

    async def _protect(self, channel_id: UUID, secret: str) -> Channel:
        channel = await self._require(channel_id)
        if channel.channel_type in (ChannelType.DM, ChannelType.PRIVATE):
            raise InvalidChannelOperation(
                f"{channel.channel_type.value} channels cannot be password protected",
                details={"channel_id": str(channel_id)},
            )

        await self._store_hash(channel, secret)
        channel.channel_type = ChannelType.PROTECTED
        channel.is_public = False
        return await self.channels.save(channel)

    async def _store_hash(self, channel: Channel, secret: str) -> None:
        salt = await self.hasher.gen_salt()
        channel.password_salt = salt
        channel.password_hash = await self.hasher.hash(secret, salt)

    async def _require(self, channel_id: UUID) -> Channel:
        channel = await self.channels.get_by_id(channel_id)
        if channel is None:
            raise ChannelNotFound(channel_id)
        return channel
