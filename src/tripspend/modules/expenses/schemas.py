from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from tripspend.modules.expenses.models import ExpenseCategory, ExpenseStatus
from tripspend.modules.identity.schemas import UserBrief
from tripspend.modules.org.schemas import CostCenterBrief, ProjectBrief
from tripspend.modules.workflow.schemas import NoteOut


class PolicyCheckOut(BaseModel):
    receipt_required: bool = False
    receipt_missing: bool = False
    exceeds_daily_limit: bool = False
    daily_limit: Decimal | None = None
    daily_spent: Decimal | None = None
    valid: bool = True
    warnings: list[str] = []
    errors: list[str] = []


class ExpenseCreate(BaseModel):
    category: ExpenseCategory
    expense_date: date
    amount: Decimal = Field(gt=0, decimal_places=2)
    currency: str = "BRL"
    cost_center_id: uuid.UUID
    project_id: uuid.UUID | None = None
    trip_id: uuid.UUID | None = None
    vendor: str | None = None
    description: str | None = None
    km_driven: Decimal | None = Field(default=None, ge=0)
    has_receipt: bool = False


class ExpenseUpdate(BaseModel):
    category: ExpenseCategory | None = None
    expense_date: date | None = None
    amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    currency: str | None = None
    cost_center_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None
    trip_id: uuid.UUID | None = None
    vendor: str | None = None
    description: str | None = None
    km_driven: Decimal | None = Field(default=None, ge=0)
    has_receipt: bool | None = None


class ExpenseApprove(BaseModel):
    note: str | None = None


class ExpenseReject(BaseModel):
    reason: str


class ExpenseAdjust(BaseModel):
    amount: Decimal = Field(gt=0, decimal_places=2)
    reason: str


class ExpenseFileOut(BaseModel):
    id: uuid.UUID
    filename: str
    url: str
    mime_type: str
    size: int
    created_at: datetime


class ExpenseOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    user_id: uuid.UUID
    cost_center_id: uuid.UUID
    project_id: uuid.UUID | None
    trip_id: uuid.UUID | None
    category: ExpenseCategory
    expense_date: date
    currency: str
    amount: Decimal
    amount_base: Decimal
    has_receipt: bool
    vendor: str | None
    description: str | None
    km_driven: Decimal | None
    status: ExpenseStatus
    policy_check: PolicyCheckOut
    submitted_at: datetime | None
    decided_at: datetime | None
    reimbursed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    user: UserBrief
    cost_center: CostCenterBrief
    project: ProjectBrief | None
    files: list[ExpenseFileOut]
    notes: list[NoteOut]


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ExpensePage(BaseModel):
    items: list[ExpenseOut]
    meta: PageMeta
