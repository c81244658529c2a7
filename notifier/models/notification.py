"""Notification log and device token models"""

from sqlalchemy import Column, String, Boolean, JSON, Text, DateTime, Integer, UniqueConstraint
import enum

from .base import Base, TimestampedModel, UUIDModel

class NotificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"

class TargetType(str, enum.Enum):
    USER = "USER"
    USERS = "USERS"
    ALL = "ALL"

class DevicePlatform(str, enum.Enum):
    WEB = "web"
    ANDROID = "android"
    IOS = "ios"

# Allowed lifecycle moves; anything else is a programming error
STATUS_TRANSITIONS = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.FAILED: {NotificationStatus.PENDING},
    NotificationStatus.SENT: set(),
}

class NotificationLog(Base, TimestampedModel, UUIDModel):
    """Durable record of one notification request"""

    __tablename__ = "notification_logs"

    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    target_type = Column(String(10), nullable=False)
    user_ids = Column(JSON, nullable=False, default=list)
    data = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=NotificationStatus.PENDING.value, index=True)
    error = Column(Text)
    retry_count = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime(timezone=True))
    sent_at = Column(DateTime(timezone=True))

    # Optimistic concurrency: every UPDATE is conditional on this counter
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

class DeviceToken(Base, TimestampedModel, UUIDModel):
    """FCM device tokens for users"""

    __tablename__ = "device_tokens"
    __table_args__ = (
        UniqueConstraint("user_id", "device_id", name="uq_device_tokens_user_device"),
    )

    user_id = Column(String(64), nullable=False, index=True)
    token = Column(String(500), unique=True, nullable=False, index=True)
    device_id = Column(String(200))
    platform = Column(String(20), nullable=False)  # web, android, ios
    is_active = Column(Boolean, nullable=False, default=True)
    last_used_at = Column(DateTime(timezone=True))
