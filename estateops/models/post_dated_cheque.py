"""PostDatedCheque model — tenant cheques held until their cheque date.

A bounced cheque may be replaced by a new one; ``original_pdc_id`` and
``replacement_pdc_id`` link the instruments into a replacement chain.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
    false,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from estateops.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from estateops.models.enums import PdcStatus


class PostDatedCheque(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "pdcs"

    cheque_number: Mapped[str] = mapped_column(String(50), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(100), nullable=False)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    invoice_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("invoices.id", ondelete="SET NULL")
    )
    lease_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    cheque_date: Mapped[date] = mapped_column(Date, nullable=False)
    deposit_date: Mapped[date | None] = mapped_column(Date)
    cleared_date: Mapped[date | None] = mapped_column(Date)
    bounced_date: Mapped[date | None] = mapped_column(Date)
    bounce_reason: Mapped[str | None] = mapped_column(String(255))

    status: Mapped[PdcStatus] = mapped_column(
        SQLAlchemyEnum(PdcStatus, name="pdcstatus"),
        nullable=False, default=PdcStatus.RECEIVED, server_default="RECEIVED"
    )
    due_notice_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # Replacement chain
    original_pdc_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("pdcs.id", ondelete="RESTRICT")
    )
    replacement_pdc_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("pdcs.id", ondelete="RESTRICT")
    )

    notes: Mapped[str | None] = mapped_column(String(500))
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    __table_args__ = (
        UniqueConstraint("cheque_number", "tenant_id", name="uq_pdcs_cheque_tenant"),
        Index("ix_pdcs_tenant_id", "tenant_id"),
        Index("ix_pdcs_status_cheque_date", "status", "cheque_date"),
        Index("ix_pdcs_original_pdc_id", "original_pdc_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PostDatedCheque id={self.id} cheque={self.cheque_number} "
            f"status={self.status}>"
        )
