"""Pydantic v2 schemas for the cheque replacement workflow."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from estateops.models.enums import PdcStatus


class PdcReplacementDraft(BaseModel):
    cheque_number: str = Field(..., min_length=1, max_length=50)
    bank_name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)
    cheque_date: date
    notes: str | None = Field(None, max_length=500)
    created_by: uuid.UUID


class PdcChainLink(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    cheque_number: str
    bank_name: str
    amount: Decimal
    cheque_date: date
    status: PdcStatus
    original_pdc_id: uuid.UUID | None = None
    replacement_pdc_id: uuid.UUID | None = None
    created_at: datetime
