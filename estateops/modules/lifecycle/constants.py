"""Shipped transition rule table and milestone keys."""

from __future__ import annotations

from estateops.models.enums import (
    ComplianceScheduleStatus,
    DocumentStatus,
    InvoiceStatus,
    PdcStatus,
    SubjectType,
    VendorDocumentStatus,
)
from estateops.modules.lifecycle.rules import DateWindow, TransitionRule

# Milestone keys for the notification task queue
MILESTONE_INVOICE_PAYMENT_REMINDER = "invoice.payment_reminder"
MILESTONE_INVOICE_OVERDUE = "invoice.overdue"
MILESTONE_PDC_DUE = "pdc.due"
MILESTONE_COMPLIANCE_DUE = "compliance.due"
MILESTONE_COMPLIANCE_OVERDUE = "compliance.overdue"
MILESTONE_DOCUMENT_EXPIRY_30 = "document.expiry_30"
MILESTONE_DOCUMENT_EXPIRY_7 = "document.expiry_7"
MILESTONE_DOCUMENT_EXPIRED = "document.expired"
MILESTONE_VENDOR_DOCUMENT_EXPIRY_30 = "vendor_document.expiry_30"
MILESTONE_VENDOR_DOCUMENT_EXPIRY_15 = "vendor_document.expiry_15"

# Look-ahead windows in days
INVOICE_REMINDER_DAYS = 7
PDC_DUE_WINDOW_DAYS = 7
COMPLIANCE_DUE_WINDOW_DAYS = 30
DOCUMENT_EXPIRY_NOTICE_DAYS = 30
DOCUMENT_URGENT_EXPIRY_DAYS = 7
VENDOR_DOCUMENT_EXPIRY_NOTICE_DAYS = 30
VENDOR_DOCUMENT_URGENT_EXPIRY_DAYS = 15

# Gating date strictly before as_of
PAST_DUE = -1


TRANSITION_RULES: tuple[TransitionRule, ...] = (
    # ── Invoices ────────────────────────────────────────────────────────────
    TransitionRule(
        rule_id="invoice.payment_reminder",
        subject_type=SubjectType.INVOICE,
        source_status=InvoiceStatus.SENT,
        target_status=InvoiceStatus.SENT,
        window=DateWindow("due_date", 0, INVOICE_REMINDER_DAYS),
        milestone_key=MILESTONE_INVOICE_PAYMENT_REMINDER,
        milestone_field="reminder_sent",
    ),
    TransitionRule(
        rule_id="invoice.partial_payment_reminder",
        subject_type=SubjectType.INVOICE,
        source_status=InvoiceStatus.PARTIALLY_PAID,
        target_status=InvoiceStatus.PARTIALLY_PAID,
        window=DateWindow("due_date", 0, INVOICE_REMINDER_DAYS),
        milestone_key=MILESTONE_INVOICE_PAYMENT_REMINDER,
        milestone_field="reminder_sent",
    ),
    TransitionRule(
        rule_id="invoice.overdue",
        subject_type=SubjectType.INVOICE,
        source_status=InvoiceStatus.SENT,
        target_status=InvoiceStatus.OVERDUE,
        window=DateWindow("due_date", max_days=PAST_DUE),
        milestone_key=MILESTONE_INVOICE_OVERDUE,
        milestone_field="overdue_notice_sent",
    ),
    TransitionRule(
        rule_id="invoice.partial_overdue",
        subject_type=SubjectType.INVOICE,
        source_status=InvoiceStatus.PARTIALLY_PAID,
        target_status=InvoiceStatus.OVERDUE,
        window=DateWindow("due_date", max_days=PAST_DUE),
        milestone_key=MILESTONE_INVOICE_OVERDUE,
        milestone_field="overdue_notice_sent",
    ),
    # ── Post-dated cheques ──────────────────────────────────────────────────
    TransitionRule(
        rule_id="pdc.due_window",
        subject_type=SubjectType.PDC,
        source_status=PdcStatus.RECEIVED,
        target_status=PdcStatus.DUE,
        window=DateWindow("cheque_date", 0, PDC_DUE_WINDOW_DAYS),
        milestone_key=MILESTONE_PDC_DUE,
        milestone_field="due_notice_sent",
    ),
    # ── Compliance schedules ────────────────────────────────────────────────
    TransitionRule(
        rule_id="compliance.due_soon",
        subject_type=SubjectType.COMPLIANCE_SCHEDULE,
        source_status=ComplianceScheduleStatus.UPCOMING,
        target_status=ComplianceScheduleStatus.DUE,
        window=DateWindow("due_date", 0, COMPLIANCE_DUE_WINDOW_DAYS),
        milestone_key=MILESTONE_COMPLIANCE_DUE,
        milestone_field="due_notice_sent",
    ),
    TransitionRule(
        rule_id="compliance.missed",
        subject_type=SubjectType.COMPLIANCE_SCHEDULE,
        source_status=ComplianceScheduleStatus.UPCOMING,
        target_status=ComplianceScheduleStatus.OVERDUE,
        window=DateWindow("due_date", max_days=PAST_DUE),
        milestone_key=MILESTONE_COMPLIANCE_OVERDUE,
        milestone_field="overdue_notice_sent",
    ),
    TransitionRule(
        rule_id="compliance.overdue",
        subject_type=SubjectType.COMPLIANCE_SCHEDULE,
        source_status=ComplianceScheduleStatus.DUE,
        target_status=ComplianceScheduleStatus.OVERDUE,
        window=DateWindow("due_date", max_days=PAST_DUE),
        milestone_key=MILESTONE_COMPLIANCE_OVERDUE,
        milestone_field="overdue_notice_sent",
    ),
    # ── Documents ───────────────────────────────────────────────────────────
    TransitionRule(
        rule_id="document.expiry_notice_30",
        subject_type=SubjectType.DOCUMENT,
        source_status=DocumentStatus.ACTIVE,
        target_status=DocumentStatus.ACTIVE,
        window=DateWindow("expiry_date", 0, DOCUMENT_EXPIRY_NOTICE_DAYS),
        milestone_key=MILESTONE_DOCUMENT_EXPIRY_30,
        milestone_field="expiry_notice_30_sent",
    ),
    TransitionRule(
        rule_id="document.expiry_notice_7",
        subject_type=SubjectType.DOCUMENT,
        source_status=DocumentStatus.ACTIVE,
        target_status=DocumentStatus.ACTIVE,
        window=DateWindow("expiry_date", 0, DOCUMENT_URGENT_EXPIRY_DAYS),
        milestone_key=MILESTONE_DOCUMENT_EXPIRY_7,
        milestone_field="expiry_notice_7_sent",
    ),
    TransitionRule(
        rule_id="document.expired",
        subject_type=SubjectType.DOCUMENT,
        source_status=DocumentStatus.ACTIVE,
        target_status=DocumentStatus.EXPIRED,
        window=DateWindow("expiry_date", max_days=PAST_DUE),
        milestone_key=MILESTONE_DOCUMENT_EXPIRED,
        milestone_field="expired_notice_sent",
    ),
    # ── Vendor documents ────────────────────────────────────────────────────
    TransitionRule(
        rule_id="vendor_document.expiry_notice_30",
        subject_type=SubjectType.VENDOR_DOCUMENT,
        source_status=VendorDocumentStatus.VALID,
        target_status=VendorDocumentStatus.VALID,
        window=DateWindow("expiry_date", 0, VENDOR_DOCUMENT_EXPIRY_NOTICE_DAYS),
        milestone_key=MILESTONE_VENDOR_DOCUMENT_EXPIRY_30,
        milestone_field="expiry_notice_30_sent",
    ),
    TransitionRule(
        rule_id="vendor_document.expiry_notice_15",
        subject_type=SubjectType.VENDOR_DOCUMENT,
        source_status=VendorDocumentStatus.VALID,
        target_status=VendorDocumentStatus.VALID,
        window=DateWindow("expiry_date", 0, VENDOR_DOCUMENT_URGENT_EXPIRY_DAYS),
        milestone_key=MILESTONE_VENDOR_DOCUMENT_EXPIRY_15,
        milestone_field="expiry_notice_15_sent",
    ),
    TransitionRule(
        rule_id="vendor_document.expired",
        subject_type=SubjectType.VENDOR_DOCUMENT,
        source_status=VendorDocumentStatus.VALID,
        target_status=VendorDocumentStatus.EXPIRED,
        window=DateWindow("expiry_date", max_days=PAST_DUE),
    ),
)

