"""Models package initialization"""

from .base import Base
from .notification import (
    NotificationLog,
    DeviceToken,
    NotificationStatus,
    TargetType,
    DevicePlatform,
    STATUS_TRANSITIONS,
)

__all__ = [
    "Base",
    "NotificationLog",
    "DeviceToken",
    "NotificationStatus",
    "TargetType",
    "DevicePlatform",
    "STATUS_TRANSITIONS",
]
