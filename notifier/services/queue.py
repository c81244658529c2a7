"""Redis list backed FIFO queue for notification jobs"""

from typing import Optional
from datetime import datetime, timezone
from pydantic import ValidationError
from redis.exceptions import RedisError
import json
import logging

from notifier.core.config import settings
from notifier.core.exceptions import QueueUnavailableException, MalformedJobException
from notifier.core.monitoring import queue_errors
from notifier.schemas.notification import QueueJob

logger = logging.getLogger(__name__)

class NotificationQueue:
    """FIFO queue of `{"logId": ...}` jobs

    Jobs are appended with RPUSH and taken with LPOP, so the first job
    pushed is the first job popped. The queue never retries: backend
    faults are raised to the caller as QueueUnavailableException.
    """

    def __init__(self, redis_client, key: Optional[str] = None):
        self.redis_client = redis_client
        self.key = key or settings.NOTIFICATION_QUEUE_KEY

    @property
    def dead_letter_key(self) -> str:
        return f"{self.key}:dead"

    async def push(self, job: QueueJob) -> int:
        """Append a job, returning the new queue length"""
        try:
            return await self.redis_client.rpush(self.key, job.to_payload())
        except RedisError as e:
            queue_errors.labels(operation="push").inc()
            raise QueueUnavailableException(str(e)) from e

    async def pop(self) -> Optional[QueueJob]:
        """Take the oldest job, or None when the queue is empty"""
        try:
            raw = await self.redis_client.lpop(self.key)
        except RedisError as e:
            queue_errors.labels(operation="pop").inc()
            raise QueueUnavailableException(str(e)) from e

        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")

        try:
            return QueueJob.model_validate_json(raw)
        except ValidationError as e:
            reason = "; ".join(err["msg"] for err in e.errors()) or str(e)
            raise MalformedJobException(raw=raw, reason=reason) from e

    async def length(self) -> int:
        try:
            return await self.redis_client.llen(self.key)
        except RedisError as e:
            queue_errors.labels(operation="length").inc()
            raise QueueUnavailableException(str(e)) from e

    async def dead_letter(self, raw: str, reason: str) -> None:
        """Park a rejected payload for inspection"""
        entry = json.dumps({
            "payload": raw,
            "reason": reason,
            "rejected_at": datetime.now(timezone.utc).isoformat()
        })
        try:
            await self.redis_client.rpush(self.dead_letter_key, entry)
        except RedisError as e:
            queue_errors.labels(operation="dead_letter").inc()
            raise QueueUnavailableException(str(e)) from e
        logger.warning(f"Rejected queue payload moved to {self.dead_letter_key}: {reason}")
