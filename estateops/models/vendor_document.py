from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Boolean, Date, Index, String, Uuid, false
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from estateops.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from estateops.models.enums import VendorDocumentStatus


class VendorDocument(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "vendor_documents"

    vendor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[VendorDocumentStatus] = mapped_column(
        SQLAlchemyEnum(VendorDocumentStatus, name="vendordocumentstatus"),
        nullable=False, default=VendorDocumentStatus.VALID, server_default="VALID"
    )
    # 30-day notice goes to the property manager, 15-day notice to the vendor
    expiry_notice_30_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    expiry_notice_15_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (
        Index("ix_vendor_documents_vendor_id", "vendor_id"),
        Index("ix_vendor_documents_status_expiry", "status", "expiry_date"),
    )
