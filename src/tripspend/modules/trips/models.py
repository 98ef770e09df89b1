from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripspend.core.models import Base, TenantScoped, Timestamped, UUIDPrimaryKey


class TripStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class Trip(UUIDPrimaryKey, TenantScoped, Timestamped, Base):
    __tablename__ = "trips_trip"

    requester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), index=True
    )
    manager_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), nullable=True
    )
    cost_center_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("org_cost_center.id"), index=True
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("org_project.id"), nullable=True
    )

    origin: Mapped[str] = mapped_column(String(200))
    destination: Mapped[str] = mapped_column(String(200))
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    purpose: Mapped[str] = mapped_column(Text)

    status: Mapped[TripStatus] = mapped_column(
        Enum(TripStatus, native_enum=False), index=True, default=TripStatus.DRAFT
    )

    requester = relationship("User", foreign_keys=[requester_id])
    manager = relationship("User", foreign_keys=[manager_id])
    cost_center = relationship("CostCenter")
    project = relationship("Project")
    expenses = relationship("Expense", back_populates="trip")
    notes = relationship(
        "TripNote",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="TripNote.occurred_at",
    )
