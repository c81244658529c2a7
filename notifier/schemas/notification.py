"""Notification request, log and queue job schemas"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from notifier.models.notification import TargetType, NotificationStatus, DevicePlatform

class NotificationCreate(BaseModel):
    """Payload accepted by the producer"""

    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1)
    target_type: TargetType
    user_ids: List[str] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_recipients(self):
        if self.target_type == TargetType.USER and len(self.user_ids) != 1:
            raise ValueError("target_type USER requires exactly one user id")
        if self.target_type == TargetType.USERS and not self.user_ids:
            raise ValueError("target_type USERS requires at least one user id")
        if self.target_type == TargetType.ALL and self.user_ids:
            raise ValueError("target_type ALL does not accept user ids")
        return self

class NotificationLogRead(BaseModel):
    """Notification log as returned to callers"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    body: str
    target_type: TargetType
    user_ids: List[str] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)
    status: NotificationStatus
    error: Optional[str] = None
    retry_count: int = 0
    created_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None

class QueueJob(BaseModel):
    """Queue payload: a pointer to a notification log, never a copy of it"""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    log_id: str = Field(..., alias="logId", min_length=1)

    def to_payload(self) -> str:
        return self.model_dump_json(by_alias=True)

class DeviceTokenRegister(BaseModel):
    """Device token registration request"""

    token: str = Field(..., min_length=1, max_length=500)
    platform: DevicePlatform
    device_id: Optional[str] = Field(None, max_length=200)
