from __future__ import annotations

import enum
import uuid
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripspend.core.models import Base, TenantScoped, Timestamped, UUIDPrimaryKey


class BudgetPeriod(str, enum.Enum):
    YEARLY = "YEARLY"
    QUARTERLY = "QUARTERLY"
    MONTHLY = "MONTHLY"


def budget_scope_key(cost_center_id: uuid.UUID, project_id: uuid.UUID | None) -> str:
    return f"{cost_center_id}:{project_id or '-'}"


class Budget(UUIDPrimaryKey, TenantScoped, Timestamped, Base):
    __tablename__ = "budgets_budget"
    __table_args__ = (
        UniqueConstraint("tenant_id", "year", "period", "scope_key", name="uq_budget_scope"),
    )

    year: Mapped[int] = mapped_column(Integer, index=True)
    period: Mapped[BudgetPeriod] = mapped_column(Enum(BudgetPeriod, native_enum=False))
    cost_center_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("org_cost_center.id"), index=True
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("org_project.id"), nullable=True
    )
    # cost_center_id + project_id folded into one non-null column so a null project
    # still takes part in the unique constraint
    scope_key: Mapped[str] = mapped_column(String(80))
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    cost_center = relationship("CostCenter")
    project = relationship("Project")
