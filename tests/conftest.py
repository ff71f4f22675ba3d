"""Pytest fixtures for the lifecycle and notification core."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import estateops.models  # noqa: F401  (register all tables on Base.metadata)
from estateops.clock import FixedClock
from estateops.database.base import Base
from estateops.models.compliance_schedule import ComplianceSchedule
from estateops.models.document import Document
from estateops.models.enums import (
    ComplianceScheduleStatus,
    DocumentStatus,
    InvoiceStatus,
    PdcStatus,
    VendorDocumentStatus,
)
from estateops.models.invoice import Invoice
from estateops.models.post_dated_cheque import PostDatedCheque
from estateops.models.vendor_document import VendorDocument

from tests.helpers import NOW, TODAY, days_from_today

# Use SQLite for lightweight in-process testing
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def async_test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def async_test_session(async_test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        async_test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


# ---------------------------------------------------------------------------
# Subject factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_invoice(async_test_session):
    async def _make(
        due_in_days: int,
        status: InvoiceStatus = InvoiceStatus.SENT,
        **overrides,
    ) -> Invoice:
        invoice = Invoice(
            invoice_number=overrides.pop("invoice_number", f"INV-{uuid.uuid4().hex[:8]}"),
            tenant_id=overrides.pop("tenant_id", uuid.uuid4()),
            invoice_date=days_from_today(due_in_days - 30),
            due_date=days_from_today(due_in_days),
            total_amount=Decimal("5000.00"),
            status=status,
            **overrides,
        )
        async_test_session.add(invoice)
        await async_test_session.commit()
        return invoice

    return _make


@pytest.fixture
def make_cheque(async_test_session):
    async def _make(
        cheque_date: date | None = None,
        status: PdcStatus = PdcStatus.RECEIVED,
        tenant_id: uuid.UUID | None = None,
        **overrides,
    ) -> PostDatedCheque:
        cheque = PostDatedCheque(
            cheque_number=overrides.pop("cheque_number", f"CHQ-{uuid.uuid4().hex[:8]}"),
            bank_name=overrides.pop("bank_name", "Emirates NBD"),
            tenant_id=tenant_id or uuid.uuid4(),
            amount=overrides.pop("amount", Decimal("12500.00")),
            cheque_date=cheque_date or TODAY,
            status=status,
            created_by=uuid.uuid4(),
            **overrides,
        )
        async_test_session.add(cheque)
        await async_test_session.commit()
        return cheque

    return _make


@pytest.fixture
def make_compliance_schedule(async_test_session):
    async def _make(
        due_in_days: int,
        status: ComplianceScheduleStatus = ComplianceScheduleStatus.UPCOMING,
    ) -> ComplianceSchedule:
        schedule = ComplianceSchedule(
            property_id=uuid.uuid4(),
            requirement_name="Fire safety inspection",
            due_date=days_from_today(due_in_days),
            status=status,
        )
        async_test_session.add(schedule)
        await async_test_session.commit()
        return schedule

    return _make


@pytest.fixture
def make_document(async_test_session):
    async def _make(
        expires_in_days: int | None,
        status: DocumentStatus = DocumentStatus.ACTIVE,
    ) -> Document:
        document = Document(
            document_number=f"DOC-{uuid.uuid4().hex[:8]}",
            document_type="TRADE_LICENSE",
            title="Trade license",
            expiry_date=days_from_today(expires_in_days) if expires_in_days is not None else None,
            status=status,
        )
        async_test_session.add(document)
        await async_test_session.commit()
        return document

    return _make


@pytest.fixture
def make_vendor_document(async_test_session):
    async def _make(
        expires_in_days: int | None,
        status: VendorDocumentStatus = VendorDocumentStatus.VALID,
    ) -> VendorDocument:
        document = VendorDocument(
            vendor_id=uuid.uuid4(),
            document_type="INSURANCE",
            file_name="insurance.pdf",
            expiry_date=days_from_today(expires_in_days) if expires_in_days is not None else None,
            status=status,
        )
        async_test_session.add(document)
        await async_test_session.commit()
        return document

    return _make
