from .notification import NotificationCreate, NotificationLogRead, QueueJob, DeviceTokenRegister
from .push import TokenResult, MulticastResult, TopicManagementResult, UserDeliveryReport

__all__ = [
    "NotificationCreate",
    "NotificationLogRead",
    "QueueJob",
    "DeviceTokenRegister",
    "TokenResult",
    "MulticastResult",
    "TopicManagementResult",
    "UserDeliveryReport",
]
