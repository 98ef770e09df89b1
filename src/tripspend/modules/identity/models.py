from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, Enum, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripspend.core.models import Base, TenantScoped, Timestamped, UUIDPrimaryKey


class UserRole(str, enum.Enum):
    COLLABORATOR = "COLLABORATOR"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class User(UUIDPrimaryKey, TenantScoped, Timestamped, Base):
    __tablename__ = "identity_user"

    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(200))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole, native_enum=False), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    tenant = relationship("Tenant")
    managed_cost_centers = relationship(
        "ManagerCostCenter", back_populates="user", cascade="all, delete-orphan"
    )


class ManagerCostCenter(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "identity_manager_cost_center"
    __table_args__ = (
        UniqueConstraint("user_id", "cost_center_id", name="uq_manager_cost_center"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), index=True
    )
    cost_center_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("org_cost_center.id"), index=True
    )

    user = relationship("User", back_populates="managed_cost_centers")
    cost_center = relationship("CostCenter")
