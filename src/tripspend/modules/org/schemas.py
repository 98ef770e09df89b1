from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class CostCenterCreate(BaseModel):
    name: str
    code: str
    description: str | None = None


class CostCenterUpdate(BaseModel):
    name: str | None = None
    code: str | None = None
    description: str | None = None


class CostCenterOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    code: str
    description: str | None
    active: bool
    created_at: datetime
    updated_at: datetime


class CostCenterBrief(BaseModel):
    id: uuid.UUID
    name: str
    code: str


class ProjectCreate(BaseModel):
    name: str
    code: str
    cost_center_id: uuid.UUID | None = None
    description: str | None = None


class ProjectUpdate(BaseModel):
    name: str | None = None
    code: str | None = None
    cost_center_id: uuid.UUID | None = None
    description: str | None = None


class ProjectOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    cost_center_id: uuid.UUID | None
    name: str
    code: str
    description: str | None
    active: bool
    created_at: datetime
    updated_at: datetime


class ProjectBrief(BaseModel):
    id: uuid.UUID
    name: str
    code: str
