from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class FxRateUpsert(BaseModel):
    currency: str
    rate: Decimal = Field(gt=0)
    rate_date: date
    source: str | None = None


class FxRateOut(BaseModel):
    id: uuid.UUID
    rate_date: date
    currency: str
    rate: Decimal
    source: str | None
    created_at: datetime
    updated_at: datetime


class ConversionOut(BaseModel):
    amount: Decimal
    currency: str
    rate: Decimal
    amount_base: Decimal
    base_currency: str
