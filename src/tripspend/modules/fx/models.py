from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tripspend.core.models import Base, Timestamped, UUIDPrimaryKey


class FxRate(UUIDPrimaryKey, Timestamped, Base):
    """Units of base currency (BRL) per one unit of ``currency`` on ``rate_date``."""

    __tablename__ = "fx_rate"
    __table_args__ = (UniqueConstraint("rate_date", "currency", name="uq_fx_rate_date_currency"),)

    rate_date: Mapped[date] = mapped_column(Date, index=True)
    currency: Mapped[str] = mapped_column(String(3), index=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)
