from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripspend.core.models import Base, TenantScoped, Timestamped, UUIDPrimaryKey


class CostCenter(UUIDPrimaryKey, TenantScoped, Timestamped, Base):
    __tablename__ = "org_cost_center"

    name: Mapped[str] = mapped_column(String(200))
    code: Mapped[str] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)


class Project(UUIDPrimaryKey, TenantScoped, Timestamped, Base):
    __tablename__ = "org_project"
    __table_args__ = (UniqueConstraint("tenant_id", "code", name="uq_project_tenant_code"),)

    cost_center_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("org_cost_center.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(200))
    code: Mapped[str] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    cost_center = relationship("CostCenter")
