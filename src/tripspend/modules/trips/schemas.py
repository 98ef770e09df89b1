from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from tripspend.modules.identity.schemas import UserBrief
from tripspend.modules.org.schemas import CostCenterBrief, ProjectBrief
from tripspend.modules.trips.models import TripStatus
from tripspend.modules.workflow.schemas import NoteOut


class TripCreate(BaseModel):
    origin: str
    destination: str
    start_at: datetime
    end_at: datetime
    purpose: str
    cost_center_id: uuid.UUID
    project_id: uuid.UUID | None = None


class TripUpdate(BaseModel):
    origin: str | None = None
    destination: str | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    purpose: str | None = None
    cost_center_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None


class TripApprove(BaseModel):
    note: str | None = None


class TripReject(BaseModel):
    reason: str


class TripOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    requester_id: uuid.UUID
    manager_id: uuid.UUID | None
    cost_center_id: uuid.UUID
    project_id: uuid.UUID | None
    origin: str
    destination: str
    start_at: datetime
    end_at: datetime
    purpose: str
    status: TripStatus
    created_at: datetime
    updated_at: datetime

    requester: UserBrief
    manager: UserBrief | None
    cost_center: CostCenterBrief
    project: ProjectBrief | None
    notes: list[NoteOut]


class TripSummaryOut(BaseModel):
    trip_id: uuid.UUID
    expense_count: int
    total_base: Decimal
    by_category: dict[str, Decimal]
