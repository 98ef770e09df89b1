from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, Enum, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from tripspend.core.models import Base, TenantScoped, Timestamped, UUIDPrimaryKey
from tripspend.modules.expenses.models import ExpenseCategory


class Policy(UUIDPrimaryKey, TenantScoped, Timestamped, Base):
    __tablename__ = "policy_policy"

    category: Mapped[ExpenseCategory] = mapped_column(
        Enum(ExpenseCategory, native_enum=False), index=True
    )
    receipt_required_over: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    daily_limit: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    km_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)
    per_diem_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
