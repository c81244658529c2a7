"""Notification worker: the single consumer of the notification queue"""

from typing import Optional
from contextlib import suppress
import asyncio
import enum
import logging

from notifier.core.config import settings
from notifier.core.database import AsyncSessionLocal
from notifier.core.exceptions import (
    QueueUnavailableException,
    MalformedJobException,
    DeliveryException,
)
from notifier.core.monitoring import notifications_processed
from notifier.models.notification import NotificationLog, NotificationStatus, TargetType
from notifier.schemas.notification import QueueJob
from notifier.services.notification_log import NotificationLogStore
from notifier.services.push_gateway import PushGateway
from notifier.services.push_notification_service import PushNotificationService
from notifier.services.queue import NotificationQueue

logger = logging.getLogger(__name__)

class JobOutcome(str, enum.Enum):
    IDLE = "idle"            # queue empty or unreachable
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"      # log missing or no longer pending
    CONFLICT = "conflict"    # another worker changed the log first
    REJECTED = "rejected"    # malformed payload, dead-lettered
    ERROR = "error"          # storage fault while processing, log left as is

class NotificationWorker:
    """Consumes queue jobs one at a time and records their delivery outcome

    `start()` runs the consume loop as a background task and `stop()`
    ends it; `run_once()` performs a single iteration and is what the loop
    calls. Every per-job fault is recorded on the log or logged, never
    allowed to end the loop.
    """

    def __init__(
        self,
        queue: NotificationQueue,
        gateway: PushGateway,
        session_factory=None,
        idle_backoff: Optional[float] = None,
        shutdown_timeout: Optional[float] = None,
        broadcast_topic: Optional[str] = None
    ):
        self.queue = queue
        self.gateway = gateway
        self.session_factory = session_factory or AsyncSessionLocal
        self.idle_backoff = (
            settings.WORKER_IDLE_BACKOFF_SECONDS if idle_backoff is None else idle_backoff
        )
        self.shutdown_timeout = (
            settings.WORKER_SHUTDOWN_TIMEOUT_SECONDS if shutdown_timeout is None else shutdown_timeout
        )
        self.broadcast_topic = broadcast_topic
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start consuming in the background; calling it twice is a no-op"""
        if not self.running:
            self._stop_event = asyncio.Event()
            self._task = asyncio.create_task(self._consume(), name="notification-worker")
        return self._task

    async def stop(self) -> None:
        """Ask the loop to finish its current job and wait for it to exit"""
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning("Notification worker did not stop in time, cancelling")
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        finally:
            self._task = None

    async def _consume(self) -> None:
        logger.info("Notification worker started consuming...")
        while not self._stop_event.is_set():
            try:
                outcome = await self.run_once()
            except Exception as e:
                logger.error(f"Worker job processing error: {e}")
                outcome = JobOutcome.IDLE

            if outcome in (JobOutcome.IDLE, JobOutcome.ERROR):
                await self._backoff()
        logger.info("Notification worker stopped")

    async def _backoff(self) -> None:
        # Wakes early when stop() is called
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.idle_backoff)

    async def run_once(self) -> JobOutcome:
        """Pop at most one job and process it"""
        try:
            job = await self.queue.pop()
        except QueueUnavailableException as e:
            logger.warning(f"Queue is unavailable, retrying in {self.idle_backoff}s: {e.detail}")
            return JobOutcome.IDLE
        except MalformedJobException as e:
            logger.error(f"Rejecting queue payload {e.raw!r}: {e.reason}")
            try:
                await self.queue.dead_letter(e.raw, e.reason)
            except QueueUnavailableException as dead_letter_error:
                logger.error(f"Could not dead-letter payload: {dead_letter_error.detail}")
            outcome = JobOutcome.REJECTED
        else:
            if job is None:
                return JobOutcome.IDLE
            try:
                outcome = await self.process(job)
            except Exception as e:
                # The log stays as it was; it can be found by id in the logs
                logger.error(f"Processing notification {job.log_id} failed: {e}")
                outcome = JobOutcome.ERROR

        notifications_processed.labels(outcome=outcome.value).inc()
        return outcome

    async def process(self, job: QueueJob) -> JobOutcome:
        """Deliver the notification a job points to and record the result"""
        async with self.session_factory() as db:
            store = NotificationLogStore(db)
            log = await store.find_by_id(job.log_id)
            if log is None:
                logger.debug(f"Notification {job.log_id} no longer exists, skipping job")
                return JobOutcome.SKIPPED
            if log.status != NotificationStatus.PENDING.value:
                logger.info(f"Notification {log.id} is {log.status}, skipping job")
                return JobOutcome.SKIPPED
            if not await store.claim(log):
                return JobOutcome.CONFLICT

            push_service = PushNotificationService(db, self.gateway, self.broadcast_topic)
            try:
                await self._dispatch(push_service, log)
            except Exception as e:
                logger.error(f"Notification delivery failed for log {job.log_id}: {e}")
                # Discard whatever the failed dispatch left half-done
                await db.rollback()
                log = await store.find_by_id(job.log_id)
                if log is None or log.status != NotificationStatus.PENDING.value:
                    return JobOutcome.CONFLICT
                applied = await store.transition(
                    log, NotificationStatus.FAILED, error=str(e), increment_retry=True
                )
                return JobOutcome.FAILED if applied else JobOutcome.CONFLICT

            applied = await store.transition(log, NotificationStatus.SENT)
            if applied:
                logger.info(f"Notification {job.log_id} sent")
            return JobOutcome.SENT if applied else JobOutcome.CONFLICT

    async def _dispatch(self, push_service: PushNotificationService, log: NotificationLog) -> None:
        target_type = TargetType(log.target_type)
        user_ids = list(log.user_ids or [])
        data = dict(log.data or {})

        if target_type == TargetType.ALL:
            await push_service.send_to_all(log.title, log.body, data)
            return
        if not user_ids:
            raise DeliveryException(f"No recipients for {target_type.value} notification")

        if target_type == TargetType.USER:
            await push_service.send_to_user(user_ids[0], log.title, log.body, data)
        else:
            await push_service.send_to_users(user_ids, log.title, log.body, data)
