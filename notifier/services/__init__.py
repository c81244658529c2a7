from .queue import NotificationQueue
from .notification_log import NotificationLogStore
from .token_registry import TokenRegistry
from .push_gateway import PushGateway, FirebasePushGateway
from .push_notification_service import PushNotificationService
from .producer import NotificationProducer
from .worker import NotificationWorker, JobOutcome

__all__ = [
    "NotificationQueue",
    "NotificationLogStore",
    "TokenRegistry",
    "PushGateway",
    "FirebasePushGateway",
    "PushNotificationService",
    "NotificationProducer",
    "NotificationWorker",
    "JobOutcome",
]
