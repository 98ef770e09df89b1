from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from tripspend.modules.budgets.models import BudgetPeriod
from tripspend.modules.org.schemas import CostCenterBrief, ProjectBrief


class BudgetCreate(BaseModel):
    year: int = Field(ge=2000, le=2100)
    period: BudgetPeriod = BudgetPeriod.YEARLY
    cost_center_id: uuid.UUID
    project_id: uuid.UUID | None = None
    amount: Decimal = Field(ge=0)
    notes: str | None = None


class BudgetUpdate(BaseModel):
    year: int | None = Field(default=None, ge=2000, le=2100)
    period: BudgetPeriod | None = None
    cost_center_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None
    amount: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class BudgetOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    year: int
    period: BudgetPeriod
    cost_center_id: uuid.UUID
    project_id: uuid.UUID | None
    amount: Decimal
    notes: str | None
    created_at: datetime
    updated_at: datetime

    cost_center: CostCenterBrief
    project: ProjectBrief | None


class BudgetLineOut(BaseModel):
    budget_id: uuid.UUID
    year: int
    period: BudgetPeriod
    cost_center_id: uuid.UUID
    cost_center_name: str
    project_id: uuid.UUID | None
    project_name: str | None
    budget: Decimal
    actual: Decimal
    variance: Decimal
    variance_percentage: Decimal


class BudgetSummaryOut(BaseModel):
    year: int
    lines: list[BudgetLineOut]
    total_budget: Decimal
    total_spent: Decimal
    total_variance: Decimal
    total_variance_percentage: Decimal
