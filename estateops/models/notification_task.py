"""NotificationTask model — one delivery task per (subject, milestone)."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from estateops.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from estateops.models.enums import NotificationTaskStatus, SubjectType


class NotificationTask(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "notification_tasks"

    subject_type: Mapped[SubjectType] = mapped_column(
        SQLAlchemyEnum(SubjectType, name="subjecttype"), nullable=False
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    milestone_key: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[NotificationTaskStatus] = mapped_column(
        SQLAlchemyEnum(NotificationTaskStatus, name="notificationtaskstatus"),
        nullable=False,
        default=NotificationTaskStatus.PENDING,
        server_default="PENDING",
    )
    retry_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    max_retries: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3, server_default="3"
    )
    next_attempt_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_error: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint(
            "subject_type",
            "subject_id",
            "milestone_key",
            name="uq_notification_tasks_subject_milestone",
        ),
        Index("ix_notification_tasks_status_next_attempt", "status", "next_attempt_at"),
        Index(
            "ix_notification_tasks_sending",
            "claimed_at",
            postgresql_where=text("status = 'SENDING'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationTask id={self.id} subject={self.subject_type}/{self.subject_id} "
            f"milestone={self.milestone_key} status={self.status}>"
        )
