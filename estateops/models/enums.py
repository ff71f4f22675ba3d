import enum


class SubjectType(str, enum.Enum):
    INVOICE = "INVOICE"
    PDC = "PDC"
    COMPLIANCE_SCHEDULE = "COMPLIANCE_SCHEDULE"
    DOCUMENT = "DOCUMENT"
    VENDOR_DOCUMENT = "VENDOR_DOCUMENT"


# ── Subject statuses ──────────────────────────────────────────────────────


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PdcStatus(str, enum.Enum):
    RECEIVED = "RECEIVED"
    DUE = "DUE"
    DEPOSITED = "DEPOSITED"
    CLEARED = "CLEARED"
    BOUNCED = "BOUNCED"
    REPLACED = "REPLACED"
    WITHDRAWN = "WITHDRAWN"
    CANCELLED = "CANCELLED"


class ComplianceScheduleStatus(str, enum.Enum):
    UPCOMING = "UPCOMING"
    DUE = "DUE"
    OVERDUE = "OVERDUE"
    COMPLETED = "COMPLETED"
    EXEMPT = "EXEMPT"


class DocumentStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    ARCHIVED = "ARCHIVED"


class VendorDocumentStatus(str, enum.Enum):
    VALID = "VALID"
    EXPIRED = "EXPIRED"
    SUPERSEDED = "SUPERSEDED"


# ── Notification delivery ─────────────────────────────────────────────────


class NotificationTaskStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENDING = "SENDING"
    SENT = "SENT"
    FAILED_RETRYABLE = "FAILED_RETRYABLE"
    FAILED_TERMINAL = "FAILED_TERMINAL"
