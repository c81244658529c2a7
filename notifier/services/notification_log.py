"""Notification log persistence"""

from typing import List, Optional
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy import select, update
import logging

from notifier.models.notification import NotificationLog, NotificationStatus, STATUS_TRANSITIONS
from notifier.schemas.notification import NotificationCreate
from notifier.core.exceptions import ConflictException, InvalidStatusTransitionException

logger = logging.getLogger(__name__)

class NotificationLogStore:
    """Owns every read and write of notification logs

    Each UPDATE is guarded by the row's version counter, so a writer
    holding a stale copy loses instead of overwriting a newer state.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, payload: NotificationCreate) -> NotificationLog:
        """Create a PENDING log for a notification request"""
        log = NotificationLog(
            title=payload.title,
            body=payload.body,
            target_type=payload.target_type.value,
            user_ids=list(payload.user_ids),
            data=dict(payload.data),
            status=NotificationStatus.PENDING.value,
            retry_count=0
        )
        self.db.add(log)
        await self.db.commit()
        await self.db.refresh(log)
        return log

    async def find_by_id(self, log_id: str) -> Optional[NotificationLog]:
        # Always reload so callers act on the current row, not an identity map copy
        return await self.db.get(NotificationLog, log_id, populate_existing=True)

    async def save(self, log: NotificationLog) -> NotificationLog:
        """Persist in-place changes to a log"""
        log_id = log.id
        self.db.add(log)
        try:
            await self.db.commit()
        except StaleDataError:
            await self.db.rollback()
            raise ConflictException(f"Notification {log_id} was modified concurrently")
        return log

    async def transition(
        self,
        log: NotificationLog,
        new_status: NotificationStatus,
        error: Optional[str] = None,
        increment_retry: bool = False
    ) -> bool:
        """Move a log to a new status if nobody changed it since it was read

        Returns False when another writer got there first.
        """
        log_id = log.id
        current = NotificationStatus(log.status)
        new_status = NotificationStatus(new_status)
        if new_status not in STATUS_TRANSITIONS[current]:
            raise InvalidStatusTransitionException(current.value, new_status.value)

        log.status = new_status.value
        if new_status == NotificationStatus.SENT:
            log.error = None
            log.sent_at = datetime.now(timezone.utc)
        elif new_status == NotificationStatus.FAILED:
            log.error = error
        else:
            # Back on the queue: the next worker must be able to claim it
            log.last_attempt_at = None
        if increment_retry:
            log.retry_count = (log.retry_count or 0) + 1

        try:
            await self.db.commit()
        except StaleDataError:
            await self.db.rollback()
            logger.warning(
                f"Notification {log_id} changed concurrently, "
                f"{current.value} -> {new_status.value} not applied"
            )
            return False
        return True

    async def claim(self, log: NotificationLog) -> bool:
        """Reserve a PENDING log for dispatch by this worker

        The row is only claimed while it is PENDING and unclaimed, checked
        in the UPDATE itself, so a replica that reads the log after another
        replica's claim still loses.
        """
        if log.status != NotificationStatus.PENDING.value:
            return False

        log_id = log.id
        result = await self.db.execute(
            update(NotificationLog)
            .where(
                NotificationLog.id == log_id,
                NotificationLog.status == NotificationStatus.PENDING.value,
                NotificationLog.last_attempt_at.is_(None)
            )
            .values(
                last_attempt_at=datetime.now(timezone.utc),
                version=NotificationLog.version + 1
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        if result.rowcount != 1:
            logger.info(f"Notification {log_id} already claimed by another worker")
            return False

        # Pick up the new version for the terminal transition
        await self.db.refresh(log)
        return True

    async def list_recent(self, limit: int = 100) -> List[NotificationLog]:
        """Newest logs first"""
        result = await self.db.execute(
            select(NotificationLog)
            .order_by(NotificationLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
