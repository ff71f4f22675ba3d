"""Lifecycle core — subject tables, post-dated cheque chain, notification tasks

Revision ID: 001
Revises:
Create Date: 2026-03-01

"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')

    # ── 1. Enum types ─────────────────────────────────────────────────────
    op.execute("""
        CREATE TYPE subjecttype AS ENUM (
            'INVOICE', 'PDC', 'COMPLIANCE_SCHEDULE', 'DOCUMENT', 'VENDOR_DOCUMENT'
        );
    """)
    op.execute("""
        CREATE TYPE invoicestatus AS ENUM (
            'DRAFT', 'SENT', 'PARTIALLY_PAID', 'PAID', 'OVERDUE', 'CANCELLED'
        );
    """)
    op.execute("""
        CREATE TYPE pdcstatus AS ENUM (
            'RECEIVED', 'DUE', 'DEPOSITED', 'CLEARED', 'BOUNCED',
            'REPLACED', 'WITHDRAWN', 'CANCELLED'
        );
    """)
    op.execute("""
        CREATE TYPE complianceschedulestatus AS ENUM (
            'UPCOMING', 'DUE', 'OVERDUE', 'COMPLETED', 'EXEMPT'
        );
    """)
    op.execute("CREATE TYPE documentstatus AS ENUM ('ACTIVE', 'EXPIRED', 'ARCHIVED');")
    op.execute("CREATE TYPE vendordocumentstatus AS ENUM ('VALID', 'EXPIRED', 'SUPERSEDED');")
    op.execute("""
        CREATE TYPE notificationtaskstatus AS ENUM (
            'PENDING', 'SENDING', 'SENT', 'FAILED_RETRYABLE', 'FAILED_TERMINAL'
        );
    """)

    # ── 2. invoices ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE invoices (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            invoice_number VARCHAR(50) NOT NULL UNIQUE,
            tenant_id UUID NOT NULL,
            property_id UUID,
            lease_id UUID,
            invoice_date DATE NOT NULL,
            due_date DATE NOT NULL,
            total_amount NUMERIC(12, 2) NOT NULL,
            paid_amount NUMERIC(12, 2) NOT NULL DEFAULT 0,
            status invoicestatus NOT NULL DEFAULT 'DRAFT',
            sent_at TIMESTAMPTZ,
            paid_at TIMESTAMPTZ,
            reminder_sent BOOLEAN NOT NULL DEFAULT false,
            overdue_notice_sent BOOLEAN NOT NULL DEFAULT false,
            notes TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_invoices_tenant_id ON invoices (tenant_id);")
    op.execute("CREATE INDEX ix_invoices_status_due_date ON invoices (status, due_date);")

    # ── 3. pdcs (self-referential replacement chain) ──────────────────────
    op.execute("""
        CREATE TABLE pdcs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            cheque_number VARCHAR(50) NOT NULL,
            bank_name VARCHAR(100) NOT NULL,
            tenant_id UUID NOT NULL,
            invoice_id UUID REFERENCES invoices(id) ON DELETE SET NULL,
            lease_id UUID,
            amount NUMERIC(12, 2) NOT NULL,
            cheque_date DATE NOT NULL,
            deposit_date DATE,
            cleared_date DATE,
            bounced_date DATE,
            bounce_reason VARCHAR(255),
            status pdcstatus NOT NULL DEFAULT 'RECEIVED',
            due_notice_sent BOOLEAN NOT NULL DEFAULT false,
            original_pdc_id UUID REFERENCES pdcs(id) ON DELETE RESTRICT,
            replacement_pdc_id UUID REFERENCES pdcs(id) ON DELETE RESTRICT,
            notes VARCHAR(500),
            created_by UUID NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_pdcs_cheque_tenant UNIQUE (cheque_number, tenant_id),
            CONSTRAINT ck_pdcs_not_self_replaced CHECK (
                replacement_pdc_id IS NULL OR replacement_pdc_id <> id
            )
        );
    """)
    op.execute("CREATE INDEX ix_pdcs_tenant_id ON pdcs (tenant_id);")
    op.execute("CREATE INDEX ix_pdcs_status_cheque_date ON pdcs (status, cheque_date);")
    op.execute("CREATE INDEX ix_pdcs_original_pdc_id ON pdcs (original_pdc_id);")
    # At most one cheque may name a given cheque as its replacement
    op.execute("""
        CREATE UNIQUE INDEX uq_pdcs_replacement_pdc_id
          ON pdcs (replacement_pdc_id) WHERE replacement_pdc_id IS NOT NULL;
    """)

    # ── 4. compliance_schedules ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE compliance_schedules (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            property_id UUID NOT NULL,
            requirement_name VARCHAR(200) NOT NULL,
            due_date DATE NOT NULL,
            completed_date DATE,
            status complianceschedulestatus NOT NULL DEFAULT 'UPCOMING',
            due_notice_sent BOOLEAN NOT NULL DEFAULT false,
            overdue_notice_sent BOOLEAN NOT NULL DEFAULT false,
            notes TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("""
        CREATE INDEX ix_compliance_schedules_status_due_date
          ON compliance_schedules (status, due_date);
    """)
    op.execute("""
        CREATE INDEX ix_compliance_schedules_property_id
          ON compliance_schedules (property_id);
    """)

    # ── 5. documents ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE documents (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            document_number VARCHAR(50) NOT NULL UNIQUE,
            document_type VARCHAR(100) NOT NULL,
            title VARCHAR(200) NOT NULL,
            entity_type VARCHAR(30),
            entity_id UUID,
            expiry_date DATE,
            status documentstatus NOT NULL DEFAULT 'ACTIVE',
            expiry_notice_30_sent BOOLEAN NOT NULL DEFAULT false,
            expiry_notice_7_sent BOOLEAN NOT NULL DEFAULT false,
            expired_notice_sent BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("""
        CREATE INDEX ix_documents_expiry_date
          ON documents (expiry_date) WHERE expiry_date IS NOT NULL;
    """)
    op.execute("CREATE INDEX ix_documents_entity ON documents (entity_type, entity_id);")

    # ── 6. vendor_documents ───────────────────────────────────────────────
    op.execute("""
        CREATE TABLE vendor_documents (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            vendor_id UUID NOT NULL,
            document_type VARCHAR(50) NOT NULL,
            file_name VARCHAR(255) NOT NULL,
            expiry_date DATE,
            status vendordocumentstatus NOT NULL DEFAULT 'VALID',
            expiry_notice_30_sent BOOLEAN NOT NULL DEFAULT false,
            expiry_notice_15_sent BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_vendor_documents_vendor_id ON vendor_documents (vendor_id);")
    op.execute("""
        CREATE INDEX ix_vendor_documents_status_expiry
          ON vendor_documents (status, expiry_date);
    """)

    # ── 7. notification_tasks ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notification_tasks (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            subject_type subjecttype NOT NULL,
            subject_id UUID NOT NULL,
            milestone_key VARCHAR(100) NOT NULL,
            status notificationtaskstatus NOT NULL DEFAULT 'PENDING',
            retry_count INTEGER NOT NULL DEFAULT 0,
            max_retries INTEGER NOT NULL DEFAULT 3,
            next_attempt_at TIMESTAMPTZ NOT NULL,
            claimed_at TIMESTAMPTZ,
            sent_at TIMESTAMPTZ,
            last_error TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_notification_tasks_subject_milestone
                UNIQUE (subject_type, subject_id, milestone_key)
        );
    """)
    op.execute("""
        CREATE INDEX ix_notification_tasks_status_next_attempt
          ON notification_tasks (status, next_attempt_at);
    """)
    op.execute("""
        CREATE INDEX ix_notification_tasks_sending
          ON notification_tasks (claimed_at) WHERE status = 'SENDING';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notification_tasks;")
    op.execute("DROP TABLE IF EXISTS vendor_documents;")
    op.execute("DROP TABLE IF EXISTS documents;")
    op.execute("DROP TABLE IF EXISTS compliance_schedules;")
    op.execute("DROP TABLE IF EXISTS pdcs;")
    op.execute("DROP TABLE IF EXISTS invoices;")

    op.execute("DROP TYPE IF EXISTS notificationtaskstatus;")
    op.execute("DROP TYPE IF EXISTS vendordocumentstatus;")
    op.execute("DROP TYPE IF EXISTS documentstatus;")
    op.execute("DROP TYPE IF EXISTS complianceschedulestatus;")
    op.execute("DROP TYPE IF EXISTS pdcstatus;")
    op.execute("DROP TYPE IF EXISTS invoicestatus;")
    op.execute("DROP TYPE IF EXISTS subjecttype;")
