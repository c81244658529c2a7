"""Device token registry"""

from typing import List, Optional
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
import logging

from notifier.models.notification import DeviceToken, DevicePlatform

logger = logging.getLogger(__name__)

class TokenRegistry:
    """Per-user set of device delivery addresses

    Tokens are soft-disabled, never deleted, so delivery history stays
    auditable.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def upsert(
        self,
        user_id: str,
        token: str,
        platform: str,
        device_id: Optional[str] = None
    ) -> DeviceToken:
        """Register or update a device token

        With a device id the row is keyed by (user_id, device_id) and its
        token may rotate. Without one the token itself is the key.
        """
        platform = DevicePlatform(platform).value
        holder = await self._find_by_token(token)

        if device_id:
            slot = await self._find_by_device(user_id, device_id)
            if holder is not None and slot is not None and holder.id != slot.id:
                # Last registration wins: the token's row takes over this
                # device slot and the slot's previous row is released
                slot.device_id = None
                slot.is_active = False
                await self.db.flush()
                device_token = holder
            else:
                device_token = slot or holder
        else:
            device_token = holder

        now = datetime.now(timezone.utc)
        if device_token:
            if device_token.user_id != user_id:
                logger.info(f"Token {token[:10]}... reassigned to user {user_id}")
                if not device_id:
                    # The device slot belonged to the previous owner
                    device_token.device_id = None
            device_token.user_id = user_id
            device_token.token = token
            device_token.platform = platform
            if device_id:
                device_token.device_id = device_id
            device_token.is_active = True
            device_token.last_used_at = now
        else:
            device_token = DeviceToken(
                user_id=user_id,
                token=token,
                device_id=device_id,
                platform=platform,
                is_active=True,
                last_used_at=now
            )
            self.db.add(device_token)

        await self.db.commit()
        return device_token

    async def find_active_by_user(self, user_id: str) -> List[DeviceToken]:
        """Get active device tokens for user"""
        result = await self.db.execute(
            select(DeviceToken)
            .where(
                and_(
                    DeviceToken.user_id == user_id,
                    DeviceToken.is_active == True
                )
            )
            .order_by(DeviceToken.created_at)
        )
        return list(result.scalars().all())

    async def deactivate(self, token: str) -> bool:
        """Mark token as inactive"""
        result = await self.db.execute(
            update(DeviceToken)
            .where(DeviceToken.token == token)
            .values(is_active=False)
        )
        await self.db.commit()
        return result.rowcount > 0

    async def _find_by_token(self, token: str) -> Optional[DeviceToken]:
        result = await self.db.execute(
            select(DeviceToken).where(DeviceToken.token == token)
        )
        return result.scalar_one_or_none()

    async def _find_by_device(self, user_id: str, device_id: str) -> Optional[DeviceToken]:
        result = await self.db.execute(
            select(DeviceToken).where(
                and_(
                    DeviceToken.user_id == user_id,
                    DeviceToken.device_id == device_id
                )
            )
        )
        return result.scalar_one_or_none()
