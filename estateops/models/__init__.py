# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from estateops.models.compliance_schedule import ComplianceSchedule
from estateops.models.document import Document
from estateops.models.enums import (
    ComplianceScheduleStatus,
    DocumentStatus,
    InvoiceStatus,
    NotificationTaskStatus,
    PdcStatus,
    SubjectType,
    VendorDocumentStatus,
)
from estateops.models.invoice import Invoice
from estateops.models.notification_task import NotificationTask
from estateops.models.post_dated_cheque import PostDatedCheque
from estateops.models.vendor_document import VendorDocument

__all__ = [
    "ComplianceSchedule",
    "ComplianceScheduleStatus",
    "Document",
    "DocumentStatus",
    "Invoice",
    "InvoiceStatus",
    "NotificationTask",
    "NotificationTaskStatus",
    "PdcStatus",
    "PostDatedCheque",
    "SubjectType",
    "VendorDocument",
    "VendorDocumentStatus",
]
