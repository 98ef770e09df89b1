from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from tripspend.modules.expenses.models import ExpenseCategory


class PolicyCreate(BaseModel):
    category: ExpenseCategory
    receipt_required_over: Decimal | None = Field(default=None, ge=0)
    daily_limit: Decimal | None = Field(default=None, ge=0)
    km_rate: Decimal | None = Field(default=None, ge=0)
    per_diem_amount: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class PolicyUpdate(BaseModel):
    receipt_required_over: Decimal | None = Field(default=None, ge=0)
    daily_limit: Decimal | None = Field(default=None, ge=0)
    km_rate: Decimal | None = Field(default=None, ge=0)
    per_diem_amount: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class PolicyOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    category: ExpenseCategory
    receipt_required_over: Decimal | None
    daily_limit: Decimal | None
    km_rate: Decimal | None
    per_diem_amount: Decimal | None
    notes: str | None
    active: bool
    created_at: datetime
    updated_at: datetime
