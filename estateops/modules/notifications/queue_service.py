"""NotificationQueueService — enqueue and inspect notification tasks."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from estateops.clock import Clock, SystemClock
from estateops.config import settings
from estateops.exceptions import BusinessRuleException, NotFoundException
from estateops.models.enums import NotificationTaskStatus, SubjectType
from estateops.models.notification_task import NotificationTask

logger = logging.getLogger(__name__)

_UNIQUE_KEY = ["subject_type", "subject_id", "milestone_key"]


@dataclass(frozen=True)
class EnqueueResult:
    task_id: uuid.UUID
    created: bool


class NotificationQueueService:
    """Owns creation of notification tasks and the operator re-queue action.

    Status changes during delivery belong to the dispatcher; this service
    only inserts tasks and moves FAILED_TERMINAL tasks back to PENDING.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.db = db
        self.clock = clock or SystemClock()
        self.max_retries = (
            max_retries if max_retries is not None else settings.notification_max_retries
        )

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(NotificationTask)
        if dialect == "sqlite":
            return sqlite.insert(NotificationTask)
        raise NotImplementedError(f"Conflict-free insert is not supported on {dialect}")

    async def enqueue_if_absent(
        self,
        subject_type: SubjectType,
        subject_id: uuid.UUID,
        milestone_key: str,
    ) -> EnqueueResult:
        """Create a PENDING task unless one already exists for the same key.

        Uses INSERT ... ON CONFLICT DO NOTHING on the unique
        (subject_type, subject_id, milestone_key) key, so concurrent callers
        never produce a duplicate row.
        """
        now = self.clock.now()
        stmt = (
            self._insert()
            .values(
                id=uuid.uuid4(),
                subject_type=subject_type,
                subject_id=subject_id,
                milestone_key=milestone_key,
                status=NotificationTaskStatus.PENDING,
                retry_count=0,
                max_retries=self.max_retries,
                next_attempt_at=now,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=_UNIQUE_KEY)
            .returning(NotificationTask.id)
        )
        result = await self.db.execute(stmt)
        task_id = result.scalar_one_or_none()
        if task_id is not None:
            logger.debug(
                "Enqueued notification %s for %s/%s (%s)",
                task_id,
                subject_type.value,
                subject_id,
                milestone_key,
            )
            return EnqueueResult(task_id=task_id, created=True)

        existing = await self.find_task(subject_type, subject_id, milestone_key)
        if existing is None:
            # The conflicting row was not visible to this transaction
            raise NotFoundException(
                f"Notification task for {subject_type.value}/{subject_id} "
                f"({milestone_key}) conflicted but could not be read"
            )
        return EnqueueResult(task_id=existing.id, created=False)

    async def get_task(self, task_id: uuid.UUID) -> NotificationTask:
        result = await self.db.execute(
            select(NotificationTask)
            .where(NotificationTask.id == task_id)
            .execution_options(populate_existing=True)
        )
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundException(f"Notification task {task_id} not found")
        return task

    async def find_task(
        self,
        subject_type: SubjectType,
        subject_id: uuid.UUID,
        milestone_key: str,
    ) -> NotificationTask | None:
        result = await self.db.execute(
            select(NotificationTask).where(
                NotificationTask.subject_type == subject_type,
                NotificationTask.subject_id == subject_id,
                NotificationTask.milestone_key == milestone_key,
            )
        )
        return result.scalar_one_or_none()

    async def list_terminal_failures(self, limit: int = 100) -> list[NotificationTask]:
        """Tasks that exhausted their retries, most recently failed first."""
        result = await self.db.execute(
            select(NotificationTask)
            .where(NotificationTask.status == NotificationTaskStatus.FAILED_TERMINAL)
            .order_by(NotificationTask.updated_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def requeue_terminal(self, task_id: uuid.UUID) -> NotificationTask:
        """Operator action: give a FAILED_TERMINAL task a fresh set of retries."""
        task = await self.get_task(task_id)
        if task.status != NotificationTaskStatus.FAILED_TERMINAL:
            raise BusinessRuleException(
                f"Only FAILED_TERMINAL tasks can be re-queued; task {task_id} "
                f"is {task.status.value}"
            )

        now = self.clock.now()
        result = await self.db.execute(
            update(NotificationTask)
            .where(
                NotificationTask.id == task_id,
                NotificationTask.status == NotificationTaskStatus.FAILED_TERMINAL,
            )
            .values(
                status=NotificationTaskStatus.PENDING,
                retry_count=0,
                next_attempt_at=now,
                claimed_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BusinessRuleException(f"Task {task_id} changed state while re-queueing")
        await self.db.flush()
        await self.db.refresh(task)

        logger.info("Re-queued terminally failed notification %s", task_id)
        return task
