"""Notification producer: log first, then enqueue a pointer to the log"""

from sqlalchemy.ext.asyncio import AsyncSession
import logging

from notifier.core.exceptions import (
    QueueUnavailableException,
    NotificationNotFoundException,
    ResendNotAllowedException,
)
from notifier.core.monitoring import notifications_enqueued
from notifier.models.notification import NotificationLog, NotificationStatus
from notifier.schemas.notification import NotificationCreate, QueueJob
from notifier.services.notification_log import NotificationLogStore
from notifier.services.queue import NotificationQueue

logger = logging.getLogger(__name__)

class NotificationProducer:
    """Creates notification logs and queues them for the worker"""

    def __init__(self, db: AsyncSession, queue: NotificationQueue):
        self.store = NotificationLogStore(db)
        self.queue = queue

    async def create_and_queue(self, payload: NotificationCreate) -> NotificationLog:
        """Create a PENDING log and enqueue it

        A queue outage does not raise: the log comes back FAILED with the
        reason in `error`, and callers branch on its status.
        """
        log = await self.store.create(payload)
        await self._enqueue(log)
        notifications_enqueued.labels(status=log.status).inc()
        return log

    async def resend(self, log_id: str) -> NotificationLog:
        """Put a FAILED notification back on the queue"""
        log = await self.store.find_by_id(log_id)
        if log is None:
            raise NotificationNotFoundException(log_id)
        if log.status != NotificationStatus.FAILED.value:
            raise ResendNotAllowedException()

        if not await self.store.transition(log, NotificationStatus.PENDING):
            raise ResendNotAllowedException("Notification was modified concurrently")

        await self._enqueue(log)
        logger.info(f"Notification {log_id} re-queued")
        return log

    async def _enqueue(self, log: NotificationLog) -> None:
        try:
            await self.queue.push(QueueJob(log_id=log.id))
        except QueueUnavailableException as e:
            logger.error(f"Queuing notification {log.id} failed: {e.detail}")
            log.status = NotificationStatus.FAILED.value
            log.error = f"Queuing failed: {e.detail}"
            await self.store.save(log)
