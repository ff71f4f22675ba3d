"""Document model — property/tenant documents tracked for expiry."""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Boolean, Date, Index, String, Uuid, false
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from estateops.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from estateops.models.enums import DocumentStatus


class Document(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "documents"

    document_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    document_type: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(30))
    entity_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    expiry_date: Mapped[date | None] = mapped_column(Date)

    status: Mapped[DocumentStatus] = mapped_column(
        SQLAlchemyEnum(DocumentStatus, name="documentstatus"),
        nullable=False, default=DocumentStatus.ACTIVE, server_default="ACTIVE"
    )
    expiry_notice_30_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    expiry_notice_7_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    expired_notice_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (
        Index(
            "ix_documents_expiry_date",
            "expiry_date",
            postgresql_where="expiry_date IS NOT NULL",
        ),
        Index("ix_documents_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<Document id={self.id} number={self.document_number} status={self.status}>"
