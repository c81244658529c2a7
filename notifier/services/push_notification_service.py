"""Push notification service implementation"""

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from notifier.core.config import settings
from notifier.core.exceptions import DeliveryException
from notifier.core.monitoring import device_tokens_deactivated
from notifier.models.notification import DeviceToken
from notifier.schemas.push import UserDeliveryReport
from notifier.services.push_gateway import PushGateway
from notifier.services.token_registry import TokenRegistry

logger = logging.getLogger(__name__)

class PushNotificationService:
    """Service for delivering push notifications through a gateway"""

    def __init__(
        self,
        db: AsyncSession,
        gateway: PushGateway,
        broadcast_topic: Optional[str] = None
    ):
        self.db = db
        self.gateway = gateway
        self.tokens = TokenRegistry(db)
        self.broadcast_topic = broadcast_topic or settings.BROADCAST_TOPIC

    async def register_device_token(
        self,
        user_id: str,
        token: str,
        platform: str,
        device_id: Optional[str] = None
    ) -> DeviceToken:
        """Register or update a device token

        Broadcast subscription is a separate step, see subscribe_to_broadcast.
        """
        return await self.tokens.upsert(user_id, token, platform, device_id)

    async def subscribe_to_broadcast(self, token: str) -> bool:
        """Subscribe a token to the broadcast topic"""
        try:
            result = await self.gateway.subscribe_to_topic([token], self.broadcast_topic)
        except Exception as e:
            logger.error(f"Failed to subscribe token to '{self.broadcast_topic}' topic: {e}")
            return False

        if result.failure_count:
            logger.error(
                f"Failed to subscribe token to '{self.broadcast_topic}' topic: "
                f"{', '.join(result.errors) or 'Unknown error'}"
            )
            return False

        logger.debug(f"Token {token[:10]}... subscribed to '{self.broadcast_topic}' topic")
        return True

    async def unregister_device_token(self, token: str) -> bool:
        """Unregister a device token"""
        return await self.tokens.deactivate(token)

    async def send_to_user(
        self,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> UserDeliveryReport:
        """Send notification to all active devices of a user

        A user without active tokens is not an error. Tokens the gateway
        reports as failed are deactivated.
        """
        device_tokens = await self.tokens.find_active_by_user(user_id)
        if not device_tokens:
            logger.debug(f"No active device tokens for user {user_id}")
            return UserDeliveryReport(user_id=user_id)

        result = await self.gateway.send_multicast(
            [t.token for t in device_tokens], title, body, data
        )

        for response in result.responses:
            if not response.success:
                logger.error(
                    f"FCM failed for token {response.token[:10]}...: "
                    f"{response.error or 'Unknown error'}"
                )

        deactivated = []
        for failed_token in result.failed_tokens:
            if await self.tokens.deactivate(failed_token):
                device_tokens_deactivated.inc()
                deactivated.append(failed_token)

        logger.info(
            f"FCM sent to user {user_id}: {result.success_count} successful, "
            f"{result.failure_count} failed."
        )
        return UserDeliveryReport(
            user_id=user_id,
            success_count=result.success_count,
            failure_count=result.failure_count,
            deactivated_tokens=deactivated
        )

    async def send_to_users(
        self,
        user_ids: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> List[UserDeliveryReport]:
        """Send notification to multiple users, one after another

        A failure for one user does not stop delivery to the rest; once
        everyone has been attempted the failures are raised together.
        """
        reports = []
        failures = {}

        for user_id in user_ids:
            try:
                reports.append(await self.send_to_user(user_id, title, body, data))
            except Exception as e:
                logger.error(f"Delivery to user {user_id} failed: {e}")
                failures[user_id] = str(e)

        if failures:
            summary = "; ".join(f"{uid}: {message}" for uid, message in failures.items())
            raise DeliveryException(
                f"Delivery failed for {len(failures)} of {len(user_ids)} users: {summary}",
                failures=failures
            )
        return reports

    async def send_to_all(
        self,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Optional[str]:
        """Send notification to the broadcast topic

        Topic delivery is best effort: failures are logged, not raised.
        """
        try:
            message_id = await self.gateway.send_to_topic(
                self.broadcast_topic, title, body, data
            )
        except Exception as e:
            logger.error(f"FCM failed for {self.broadcast_topic} topic: {e}")
            return None

        logger.info(f"FCM sent to {self.broadcast_topic} topic: {message_id}")
        return message_id

    async def send_to_device(
        self,
        token: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> str:
        """Send notification to a single device token"""
        try:
            message_id = await self.gateway.send_to_token(token, title, body, data)
        except Exception as e:
            logger.error(f"FCM failed for device {token[:10]}...: {e}")
            raise DeliveryException(str(e)) from e

        logger.info(f"FCM sent to device {token[:10]}...: {message_id}")
        return message_id
