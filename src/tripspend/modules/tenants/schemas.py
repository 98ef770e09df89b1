from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class TenantOut(BaseModel):
    id: uuid.UUID
    name: str
    document: str | None
    base_currency: str
    timezone: str
    is_active: bool
    created_at: datetime


class TenantUpdate(BaseModel):
    name: str | None = None
    document: str | None = None
    timezone: str | None = None
