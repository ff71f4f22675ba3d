"""Tests for LifecyclePromoter — date-triggered promotion and milestone enqueueing."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select

from estateops.exceptions import RuleConfigurationException
from estateops.models.enums import (
    ComplianceScheduleStatus,
    DocumentStatus,
    InvoiceStatus,
    NotificationTaskStatus,
    PdcStatus,
    SubjectType,
    VendorDocumentStatus,
)
from estateops.models.notification_task import NotificationTask
from estateops.modules.lifecycle.constants import TRANSITION_RULES
from estateops.modules.lifecycle.promoter import LifecyclePromoter
from estateops.modules.lifecycle.rules import DateWindow, TransitionRule
from estateops.modules.notifications.queue_service import EnqueueResult

from tests.helpers import RULES_BY_ID, TODAY


async def _tasks(session) -> list[NotificationTask]:
    result = await session.execute(
        select(NotificationTask).order_by(NotificationTask.milestone_key)
    )
    return list(result.scalars().all())


async def _task_count(session) -> int:
    result = await session.execute(select(func.count()).select_from(NotificationTask))
    return result.scalar_one()


class TestChequeDueWindow:
    """RECEIVED cheques dated within the next 7 days become DUE, once."""

    @pytest.mark.asyncio
    async def test_promotes_only_cheques_inside_window(
        self, async_test_session, clock, make_cheque
    ):
        in_window = await make_cheque(cheque_date=TODAY.replace(day=4))
        too_far = await make_cheque(cheque_date=TODAY.replace(day=11))
        already_past = await make_cheque(cheque_date=TODAY.replace(month=2, day=28))
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        promoted = await promoter.promote(SubjectType.PDC, "pdc.due_window", TODAY)
        await async_test_session.commit()

        assert promoted == 1
        for cheque in (in_window, too_far, already_past):
            await async_test_session.refresh(cheque)
        assert in_window.status == PdcStatus.DUE
        assert in_window.due_notice_sent is True
        assert too_far.status == PdcStatus.RECEIVED
        assert already_past.status == PdcStatus.RECEIVED

        tasks = await _tasks(async_test_session)
        assert len(tasks) == 1
        assert tasks[0].subject_type == SubjectType.PDC
        assert tasks[0].subject_id == in_window.id
        assert tasks[0].milestone_key == "pdc.due"
        assert tasks[0].status == NotificationTaskStatus.PENDING

    @pytest.mark.asyncio
    async def test_second_run_same_day_is_a_no_op(
        self, async_test_session, clock, make_cheque
    ):
        await make_cheque(cheque_date=TODAY.replace(day=4))
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        first = await promoter.promote(SubjectType.PDC, "pdc.due_window", TODAY)
        await async_test_session.commit()
        second = await promoter.promote(SubjectType.PDC, "pdc.due_window", TODAY)
        await async_test_session.commit()

        assert first == 1
        assert second == 0
        assert await _task_count(async_test_session) == 1

    @pytest.mark.asyncio
    async def test_cheque_date_today_is_inside_window(
        self, async_test_session, clock, make_cheque
    ):
        cheque = await make_cheque(cheque_date=TODAY)
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        assert await promoter.promote(SubjectType.PDC, "pdc.due_window", TODAY) == 1
        await async_test_session.refresh(cheque)
        assert cheque.status == PdcStatus.DUE


class TestDocumentExpiryNotices:
    @pytest.mark.asyncio
    async def test_thirty_day_notice_keeps_document_active(
        self, async_test_session, clock, make_document
    ):
        document = await make_document(expires_in_days=20)
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        stats = await promoter.run_rules(SubjectType.DOCUMENT, TODAY)

        assert stats == {"rules": 3, "promoted": 1, "errors": 0}
        await async_test_session.refresh(document)
        assert document.status == DocumentStatus.ACTIVE
        assert document.expiry_notice_30_sent is True
        assert document.expiry_notice_7_sent is False

        tasks = await _tasks(async_test_session)
        assert [t.milestone_key for t in tasks] == ["document.expiry_30"]

    @pytest.mark.asyncio
    async def test_repeated_runs_do_not_resend(self, async_test_session, clock, make_document):
        await make_document(expires_in_days=20)
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        await promoter.run_rules(SubjectType.DOCUMENT, TODAY)
        stats = await promoter.run_rules(SubjectType.DOCUMENT, TODAY)

        assert stats["promoted"] == 0
        assert await _task_count(async_test_session) == 1

    @pytest.mark.asyncio
    async def test_expired_document_moves_to_expired(
        self, async_test_session, clock, make_document
    ):
        document = await make_document(expires_in_days=-1)
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        await promoter.run_rules(SubjectType.DOCUMENT, TODAY)

        await async_test_session.refresh(document)
        assert document.status == DocumentStatus.EXPIRED
        assert document.expired_notice_sent is True
        tasks = await _tasks(async_test_session)
        assert [t.milestone_key for t in tasks] == ["document.expired"]

    @pytest.mark.asyncio
    async def test_document_without_expiry_is_never_touched(
        self, async_test_session, clock, make_document
    ):
        document = await make_document(expires_in_days=None)
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        stats = await promoter.run_rules(SubjectType.DOCUMENT, TODAY)

        assert stats["promoted"] == 0
        await async_test_session.refresh(document)
        assert document.status == DocumentStatus.ACTIVE
        assert document.expiry_notice_30_sent is False


class TestOtherSubjects:
    @pytest.mark.asyncio
    async def test_sent_invoice_past_due_becomes_overdue(
        self, async_test_session, clock, make_invoice
    ):
        overdue = await make_invoice(due_in_days=-1)
        reminder = await make_invoice(due_in_days=5, status=InvoiceStatus.PARTIALLY_PAID)
        paid = await make_invoice(due_in_days=-10, status=InvoiceStatus.PAID)
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        stats = await promoter.run_rules(SubjectType.INVOICE, TODAY)

        assert stats == {"rules": 4, "promoted": 2, "errors": 0}
        for invoice in (overdue, reminder, paid):
            await async_test_session.refresh(invoice)
        assert overdue.status == InvoiceStatus.OVERDUE
        assert overdue.overdue_notice_sent is True
        assert reminder.status == InvoiceStatus.PARTIALLY_PAID
        assert reminder.reminder_sent is True
        assert paid.status == InvoiceStatus.PAID

        milestones = {(t.subject_id, t.milestone_key) for t in await _tasks(async_test_session)}
        assert milestones == {
            (overdue.id, "invoice.overdue"),
            (reminder.id, "invoice.payment_reminder"),
        }

    @pytest.mark.asyncio
    async def test_flagged_invoice_is_promoted_again_after_part_payment(
        self, async_test_session, clock, make_invoice
    ):
        """An OVERDUE invoice moved back to PARTIALLY_PAID by a payment goes overdue again."""
        invoice = await make_invoice(
            due_in_days=-5,
            status=InvoiceStatus.PARTIALLY_PAID,
            overdue_notice_sent=True,
        )
        promoter = LifecyclePromoter(async_test_session, clock=clock)
        await promoter.queue.enqueue_if_absent(
            SubjectType.INVOICE, invoice.id, "invoice.overdue"
        )
        await async_test_session.commit()

        promoted = await promoter.promote(SubjectType.INVOICE, "invoice.partial_overdue", TODAY)
        await async_test_session.commit()

        assert promoted == 1
        await async_test_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.OVERDUE
        assert invoice.overdue_notice_sent is True
        assert await _task_count(async_test_session) == 1

    @pytest.mark.asyncio
    async def test_upcoming_compliance_past_due_skips_to_overdue(
        self, async_test_session, clock, make_compliance_schedule
    ):
        missed = await make_compliance_schedule(due_in_days=-3)
        due_soon = await make_compliance_schedule(due_in_days=25)
        later = await make_compliance_schedule(due_in_days=45)
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        await promoter.run_rules(SubjectType.COMPLIANCE_SCHEDULE, TODAY)

        for schedule in (missed, due_soon, later):
            await async_test_session.refresh(schedule)
        assert missed.status == ComplianceScheduleStatus.OVERDUE
        assert due_soon.status == ComplianceScheduleStatus.DUE
        assert later.status == ComplianceScheduleStatus.UPCOMING

    @pytest.mark.asyncio
    async def test_vendor_document_expiry_enqueues_nothing(
        self, async_test_session, clock, make_vendor_document
    ):
        expired = await make_vendor_document(expires_in_days=-2)
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        promoted = await promoter.promote(
            SubjectType.VENDOR_DOCUMENT, "vendor_document.expired", TODAY
        )

        assert promoted == 1
        await async_test_session.refresh(expired)
        assert expired.status == VendorDocumentStatus.EXPIRED
        assert await _task_count(async_test_session) == 0

    @pytest.mark.asyncio
    async def test_vendor_document_fifteen_day_notice(
        self, async_test_session, clock, make_vendor_document
    ):
        document = await make_vendor_document(expires_in_days=10)
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        await promoter.run_rules(SubjectType.VENDOR_DOCUMENT, TODAY)

        await async_test_session.refresh(document)
        assert document.expiry_notice_30_sent is True
        assert document.expiry_notice_15_sent is True
        assert {t.milestone_key for t in await _tasks(async_test_session)} == {
            "vendor_document.expiry_30",
            "vendor_document.expiry_15",
        }


class TestPromotionAtomicity:
    @pytest.mark.asyncio
    async def test_rollback_discards_status_change_and_task_together(
        self, async_test_session, clock, make_cheque
    ):
        cheque = await make_cheque(cheque_date=TODAY.replace(day=3))
        promoter = LifecyclePromoter(async_test_session, clock=clock)

        await promoter.promote(SubjectType.PDC, "pdc.due_window", TODAY)
        await async_test_session.rollback()

        await async_test_session.refresh(cheque)
        assert cheque.status == PdcStatus.RECEIVED
        assert cheque.due_notice_sent is False
        assert await _task_count(async_test_session) == 0

    @pytest.mark.asyncio
    async def test_failing_rule_is_isolated_from_the_rest(
        self, async_test_session, clock, make_document
    ):
        notice = await make_document(expires_in_days=20)
        expired = await make_document(expires_in_days=-1)
        queue = MagicMock()
        queue.enqueue_if_absent = AsyncMock(
            side_effect=[
                RuntimeError("queue unavailable"),
                EnqueueResult(task_id=uuid.uuid4(), created=True),
            ]
        )
        promoter = LifecyclePromoter(async_test_session, queue=queue, clock=clock)

        stats = await promoter.run_rules(SubjectType.DOCUMENT, TODAY)

        assert stats == {"rules": 3, "promoted": 1, "errors": 1}
        await async_test_session.refresh(notice)
        await async_test_session.refresh(expired)
        assert notice.expiry_notice_30_sent is False
        assert expired.status == DocumentStatus.EXPIRED


class TestRuleResolution:
    @pytest.mark.asyncio
    async def test_unknown_rule_id_rejected(self, async_test_session, clock):
        promoter = LifecyclePromoter(async_test_session, clock=clock)
        with pytest.raises(RuleConfigurationException, match="Unknown"):
            await promoter.promote(SubjectType.PDC, "pdc.does_not_exist", TODAY)

    @pytest.mark.asyncio
    async def test_rule_ids_resolve_against_the_promoter_table(
        self, async_test_session, clock, make_cheque
    ):
        cheque = await make_cheque(cheque_date=TODAY.replace(day=20))
        custom = TransitionRule(
            rule_id="pdc.due_fortnight",
            subject_type=SubjectType.PDC,
            source_status=PdcStatus.RECEIVED,
            target_status=PdcStatus.DUE,
            window=DateWindow("cheque_date", 0, 21),
        )
        promoter = LifecyclePromoter(async_test_session, rules=[custom], clock=clock)

        with pytest.raises(RuleConfigurationException, match="Unknown"):
            await promoter.promote(SubjectType.PDC, "pdc.due_window", TODAY)
        assert await promoter.promote(SubjectType.PDC, "pdc.due_fortnight", TODAY) == 1

        await async_test_session.refresh(cheque)
        assert cheque.status == PdcStatus.DUE

    @pytest.mark.asyncio
    async def test_rule_for_other_subject_type_rejected(self, async_test_session, clock):
        promoter = LifecyclePromoter(async_test_session, clock=clock)
        with pytest.raises(RuleConfigurationException, match="applies to"):
            await promoter.promote(SubjectType.INVOICE, RULES_BY_ID["pdc.due_window"], TODAY)

    @pytest.mark.asyncio
    async def test_invalid_rule_table_aborts_run_before_any_write(
        self, async_test_session, clock, make_cheque
    ):
        cheque = await make_cheque(cheque_date=TODAY.replace(day=3))
        broken = TransitionRule(
            rule_id="pdc.broken",
            subject_type=SubjectType.PDC,
            source_status=PdcStatus.RECEIVED,
            target_status=PdcStatus.RECEIVED,
            window=DateWindow("cheque_date", 0, 7),
        )
        promoter = LifecyclePromoter(
            async_test_session, rules=[*TRANSITION_RULES, broken], clock=clock
        )

        with pytest.raises(RuleConfigurationException):
            await promoter.run_rules(SubjectType.PDC, TODAY)

        await async_test_session.refresh(cheque)
        assert cheque.status == PdcStatus.RECEIVED
