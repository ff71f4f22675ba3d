"""Subject registry and the conditional-write repository used by promotion."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from estateops.exceptions import RuleConfigurationException
from estateops.models.compliance_schedule import ComplianceSchedule
from estateops.models.document import Document
from estateops.models.enums import (
    ComplianceScheduleStatus,
    DocumentStatus,
    InvoiceStatus,
    PdcStatus,
    SubjectType,
    VendorDocumentStatus,
)
from estateops.models.invoice import Invoice
from estateops.models.post_dated_cheque import PostDatedCheque
from estateops.models.vendor_document import VendorDocument


@dataclass(frozen=True)
class SubjectBinding:
    subject_type: SubjectType
    model: type
    status_enum: type[enum.Enum]


class SubjectRegistry:
    """Maps each subject type to the model and status enum that back it."""

    def __init__(self) -> None:
        self._bindings: dict[SubjectType, SubjectBinding] = {}

    def register(self, binding: SubjectBinding) -> None:
        self._bindings[binding.subject_type] = binding

    def get(self, subject_type: SubjectType) -> SubjectBinding:
        binding = self._bindings.get(subject_type)
        if binding is None:
            raise RuleConfigurationException(
                f"Subject type '{subject_type}' is not registered"
            )
        return binding

    def __contains__(self, subject_type: object) -> bool:
        return subject_type in self._bindings

    @property
    def bindings(self) -> list[SubjectBinding]:
        return list(self._bindings.values())


def build_default_registry() -> SubjectRegistry:
    registry = SubjectRegistry()
    registry.register(SubjectBinding(SubjectType.INVOICE, Invoice, InvoiceStatus))
    registry.register(SubjectBinding(SubjectType.PDC, PostDatedCheque, PdcStatus))
    registry.register(
        SubjectBinding(
            SubjectType.COMPLIANCE_SCHEDULE, ComplianceSchedule, ComplianceScheduleStatus
        )
    )
    registry.register(SubjectBinding(SubjectType.DOCUMENT, Document, DocumentStatus))
    registry.register(
        SubjectBinding(SubjectType.VENDOR_DOCUMENT, VendorDocument, VendorDocumentStatus)
    )
    return registry


class SubjectRepository:
    def __init__(self, db: AsyncSession, binding: SubjectBinding) -> None:
        self.db = db
        self.binding = binding

    async def advance(
        self,
        source_status: enum.Enum,
        predicate: ColumnElement[bool],
        target_status: enum.Enum,
        milestone_field: str | None = None,
    ) -> list[uuid.UUID]:
        """Move every matching record from source to target in one statement.

        The source status is part of the WHERE clause, so a record that has
        already moved is never touched twice. When status does not change,
        the milestone flag guards the write instead. Returns the ids of the
        rows actually written.
        """
        model = self.binding.model
        conditions = [model.status == source_status, predicate]
        values: dict = {}

        if target_status != source_status:
            values["status"] = target_status
        if milestone_field is not None:
            if target_status == source_status:
                conditions.append(getattr(model, milestone_field).is_(False))
            values[milestone_field] = True
        if not values:
            return []

        stmt = (
            update(model)
            .where(*conditions)
            .values(**values)
            .returning(model.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
