"""NotificationDispatcher — claims due notification tasks and delivers them."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from estateops.config import settings
from estateops.models.enums import NotificationTaskStatus, SubjectType
from estateops.models.notification_task import NotificationTask
from estateops.modules.notifications.channels.base import NotificationChannel

logger = logging.getLogger(__name__)

_MAX_ERROR_LENGTH = 2000


def compute_backoff(retry_count: int, base_seconds: int, max_seconds: int) -> timedelta:
    """Capped exponential delay before attempt ``retry_count + 1``."""
    exponent = max(retry_count - 1, 0)
    return timedelta(seconds=min(base_seconds * (2**exponent), max_seconds))


@dataclass(frozen=True)
class ClaimedTask:
    id: uuid.UUID
    subject_type: SubjectType
    subject_id: uuid.UUID
    milestone_key: str
    retry_count: int
    max_retries: int


@dataclass(frozen=True)
class DeliveryOutcome:
    task: ClaimedTask
    success: bool
    error: str | None = None


_STALE_CLAIM_ERROR = "Delivery claim expired before an outcome was recorded"

_CLAIM_COLUMNS = (
    NotificationTask.id,
    NotificationTask.subject_type,
    NotificationTask.subject_id,
    NotificationTask.milestone_key,
    NotificationTask.retry_count,
    NotificationTask.max_retries,
)


def _to_claimed(row) -> ClaimedTask:
    return ClaimedTask(
        id=row.id,
        subject_type=row.subject_type,
        subject_id=row.subject_id,
        milestone_key=row.milestone_key,
        retry_count=row.retry_count,
        max_retries=row.max_retries,
    )


def _claimable(now: datetime):
    return or_(
        NotificationTask.status == NotificationTaskStatus.PENDING,
        and_(
            NotificationTask.status == NotificationTaskStatus.FAILED_RETRYABLE,
            NotificationTask.next_attempt_at <= now,
        ),
    )


class NotificationDispatcher:
    """Delivers notification tasks with bounded retries.

    Every claim is a compare-and-set committed before the channel is called,
    so two dispatchers running at once never deliver the same task. A crash
    after delivery but before the outcome is written leaves the task in
    SENDING; the next cycle reclaims it once the claim is stale.
    """

    def __init__(
        self,
        db: AsyncSession,
        channel: NotificationChannel,
        batch_size: int | None = None,
        send_timeout_seconds: float | None = None,
        concurrency: int | None = None,
        backoff_base_seconds: int | None = None,
        backoff_max_seconds: int | None = None,
        stale_claim_seconds: int | None = None,
    ) -> None:
        self.db = db
        self.channel = channel
        self.batch_size = (
            batch_size if batch_size is not None else settings.notification_batch_size
        )
        self.send_timeout_seconds = (
            send_timeout_seconds
            if send_timeout_seconds is not None
            else settings.notification_send_timeout_seconds
        )
        self.concurrency = (
            concurrency if concurrency is not None else settings.notification_dispatch_concurrency
        )
        self.backoff_base_seconds = (
            backoff_base_seconds
            if backoff_base_seconds is not None
            else settings.notification_backoff_base_seconds
        )
        self.backoff_max_seconds = (
            backoff_max_seconds
            if backoff_max_seconds is not None
            else settings.notification_backoff_max_seconds
        )
        self.stale_claim_seconds = (
            stale_claim_seconds
            if stale_claim_seconds is not None
            else settings.notification_stale_claim_seconds
        )

    async def run_cycle(self, now: datetime, batch_size: int | None = None) -> dict:
        """Run one dispatch cycle as of ``now`` and return its counters."""
        stats = {"reclaimed": 0, "claimed": 0, "sent": 0, "retried": 0, "failed_terminal": 0}

        stats["reclaimed"] = await self.reclaim_stale(now)

        candidate_ids = await self._select_claimable(
            now, batch_size if batch_size is not None else self.batch_size
        )
        claimed: list[ClaimedTask] = []
        for task_id in candidate_ids:
            task = await self._claim(task_id, now)
            if task is not None:
                claimed.append(task)
        stats["claimed"] = len(claimed)

        if not claimed:
            return stats

        outcomes = await self._deliver_all(claimed)

        for outcome in outcomes:
            try:
                new_status = await self._record_outcome(outcome, now)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                logger.exception("Failed to record outcome for notification %s", outcome.task.id)
                continue

            if new_status == NotificationTaskStatus.SENT:
                stats["sent"] += 1
            elif new_status == NotificationTaskStatus.FAILED_TERMINAL:
                stats["failed_terminal"] += 1
            elif new_status == NotificationTaskStatus.FAILED_RETRYABLE:
                stats["retried"] += 1

        return stats

    async def reclaim_stale(self, now: datetime) -> int:
        """Record abandoned SENDING tasks as failed attempts.

        An expired claim consumes a retry like any other failure, so a task
        that kills its worker on every attempt still ends FAILED_TERMINAL.
        """
        cutoff = now - timedelta(seconds=self.stale_claim_seconds)
        result = await self.db.execute(
            select(*_CLAIM_COLUMNS)
            .where(
                NotificationTask.status == NotificationTaskStatus.SENDING,
                NotificationTask.claimed_at < cutoff,
            )
            .with_for_update(skip_locked=True)
        )
        stale = [_to_claimed(row) for row in result.all()]

        reclaimed = 0
        for task in stale:
            outcome = DeliveryOutcome(task, False, _STALE_CLAIM_ERROR)
            if await self._record_outcome(outcome, now, claimed_before=cutoff) is not None:
                reclaimed += 1
        await self.db.commit()

        if reclaimed:
            logger.warning("Reclaimed %d stale notification claim(s)", reclaimed)
        return reclaimed

    async def _select_claimable(self, now: datetime, limit: int) -> list[uuid.UUID]:
        result = await self.db.execute(
            select(NotificationTask.id)
            .where(_claimable(now))
            .order_by(NotificationTask.next_attempt_at.asc(), NotificationTask.created_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        ids = list(result.scalars().all())
        # Release row locks; the claim below is the real guard
        await self.db.commit()
        return ids

    async def _claim(self, task_id: uuid.UUID, now: datetime) -> ClaimedTask | None:
        result = await self.db.execute(
            update(NotificationTask)
            .where(NotificationTask.id == task_id, _claimable(now))
            .values(
                status=NotificationTaskStatus.SENDING,
                claimed_at=now,
                updated_at=now,
            )
            .returning(*_CLAIM_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        row = result.one_or_none()
        await self.db.commit()
        if row is None:
            return None
        return _to_claimed(row)

    async def _deliver_all(self, tasks: list[ClaimedTask]) -> list[DeliveryOutcome]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def deliver(task: ClaimedTask) -> DeliveryOutcome:
            async with semaphore:
                return await self._deliver(task)

        return list(await asyncio.gather(*(deliver(task) for task in tasks)))

    async def _deliver(self, task: ClaimedTask) -> DeliveryOutcome:
        try:
            accepted = await asyncio.wait_for(
                self.channel.send(task.subject_type, task.subject_id, task.milestone_key),
                timeout=self.send_timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "Notification %s timed out after %.1fs", task.id, self.send_timeout_seconds
            )
            return DeliveryOutcome(
                task, False, f"Timed out after {self.send_timeout_seconds}s"
            )
        except Exception as exc:
            logger.exception("Channel error delivering notification %s", task.id)
            return DeliveryOutcome(task, False, f"{type(exc).__name__}: {exc}")

        if not accepted:
            return DeliveryOutcome(task, False, "Channel rejected the notification")
        return DeliveryOutcome(task, True)

    async def _record_outcome(
        self,
        outcome: DeliveryOutcome,
        now: datetime,
        claimed_before: datetime | None = None,
    ) -> NotificationTaskStatus | None:
        """Write the delivery result; returns the new status, or None if the claim was lost."""
        task = outcome.task
        if outcome.success:
            values = {
                "status": NotificationTaskStatus.SENT,
                "sent_at": now,
                "last_error": None,
            }
        else:
            retry_count = task.retry_count + 1
            values = {
                "retry_count": retry_count,
                "last_error": (outcome.error or "")[:_MAX_ERROR_LENGTH],
            }
            if retry_count >= task.max_retries:
                values["status"] = NotificationTaskStatus.FAILED_TERMINAL
                logger.error(
                    "Notification %s failed permanently after %d attempt(s)",
                    task.id, retry_count,
                )
            else:
                values["status"] = NotificationTaskStatus.FAILED_RETRYABLE
                values["next_attempt_at"] = now + compute_backoff(
                    retry_count, self.backoff_base_seconds, self.backoff_max_seconds
                )

        conditions = [
            NotificationTask.id == task.id,
            NotificationTask.status == NotificationTaskStatus.SENDING,
        ]
        if claimed_before is not None:
            conditions.append(NotificationTask.claimed_at < claimed_before)

        result = await self.db.execute(
            update(NotificationTask)
            .where(*conditions)
            .values(claimed_at=None, updated_at=now, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("Notification %s was no longer claimed; outcome dropped", task.id)
            return None
        return values["status"]
