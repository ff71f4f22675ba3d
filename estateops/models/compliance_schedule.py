from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Boolean, Date, Index, String, Text, Uuid, false
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from estateops.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from estateops.models.enums import ComplianceScheduleStatus


class ComplianceSchedule(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "compliance_schedules"

    property_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    requirement_name: Mapped[str] = mapped_column(String(200), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    completed_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[ComplianceScheduleStatus] = mapped_column(
        SQLAlchemyEnum(ComplianceScheduleStatus, name="complianceschedulestatus"),
        nullable=False,
        default=ComplianceScheduleStatus.UPCOMING,
        server_default="UPCOMING",
    )
    due_notice_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    overdue_notice_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("ix_compliance_schedules_status_due_date", "status", "due_date"),
        Index("ix_compliance_schedules_property_id", "property_id"),
    )
