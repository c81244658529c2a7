"""Push delivery provider contract and its Firebase implementation"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from firebase_admin import messaging
import firebase_admin
import asyncio
import json
import logging

from notifier.schemas.push import MulticastResult, TokenResult, TopicManagementResult

logger = logging.getLogger(__name__)

# FCM accepts at most 500 registration tokens per multicast request
MULTICAST_BATCH_SIZE = 500

class PushGateway(ABC):
    """External push delivery provider"""

    @abstractmethod
    async def send_multicast(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> MulticastResult:
        """Send one message to many tokens, reporting each token's outcome"""

    @abstractmethod
    async def send_to_topic(
        self,
        topic: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> str:
        """Send to every token subscribed to a topic, returning the message id"""

    @abstractmethod
    async def send_to_token(
        self,
        token: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> str:
        """Send to a single token, returning the message id"""

    @abstractmethod
    async def subscribe_to_topic(self, tokens: List[str], topic: str) -> TopicManagementResult:
        """Subscribe tokens to a topic"""

def stringify_data(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """FCM data payloads only carry string values"""
    result = {}
    for key, value in (data or {}).items():
        if isinstance(value, str):
            result[str(key)] = value
        else:
            result[str(key)] = json.dumps(value, default=str)
    return result

class FirebasePushGateway(PushGateway):
    """Push gateway backed by Firebase Cloud Messaging

    firebase_admin is synchronous, so every call runs in a worker thread.
    """

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    async def send_multicast(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> MulticastResult:
        result = MulticastResult()
        for i in range(0, len(tokens), MULTICAST_BATCH_SIZE):
            batch = tokens[i:i + MULTICAST_BATCH_SIZE]
            message = messaging.MulticastMessage(
                notification=messaging.Notification(title=title, body=body),
                data=stringify_data(data),
                tokens=batch
            )
            response = await asyncio.to_thread(
                messaging.send_each_for_multicast, message, app=self.app
            )

            responses = []
            for token, resp in zip(batch, response.responses):
                responses.append(TokenResult(
                    token=token,
                    success=resp.success,
                    message_id=resp.message_id,
                    error=str(resp.exception) if resp.exception else None
                ))
            result = result.merge(MulticastResult(
                success_count=response.success_count,
                failure_count=response.failure_count,
                responses=responses
            ))

        logger.info(
            f"Multicast result - Success: {result.success_count}, "
            f"Failure: {result.failure_count}"
        )
        return result

    async def send_to_topic(
        self,
        topic: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> str:
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data=stringify_data(data),
            topic=topic
        )
        return await asyncio.to_thread(messaging.send, message, app=self.app)

    async def send_to_token(
        self,
        token: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None
    ) -> str:
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data=stringify_data(data),
            token=token
        )
        return await asyncio.to_thread(messaging.send, message, app=self.app)

    async def subscribe_to_topic(self, tokens: List[str], topic: str) -> TopicManagementResult:
        response = await asyncio.to_thread(
            messaging.subscribe_to_topic, tokens, topic, app=self.app
        )
        return TopicManagementResult(
            success_count=response.success_count,
            failure_count=response.failure_count,
            errors=[error.reason for error in response.errors]
        )
