from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from tripspend.core.models import Base, UUIDPrimaryKey


class NoteAction(str, enum.Enum):
    CREATED = "CREATED"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ADJUSTED = "ADJUSTED"
    REIMBURSED = "REIMBURSED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"
    COMMENT = "COMMENT"


class NoteRecord(UUIDPrimaryKey):
    @declared_attr
    def actor_user_id(cls) -> Mapped[uuid.UUID | None]:
        return mapped_column(Uuid(as_uuid=True), ForeignKey("identity_user.id"), nullable=True)

    action: Mapped[NoteAction] = mapped_column(Enum(NoteAction, native_enum=False))
    message: Mapped[str] = mapped_column(Text, default="")
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )


class ExpenseNote(NoteRecord, Base):
    __tablename__ = "workflow_expense_note"

    expense_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("expenses_expense.id"), index=True
    )

    expense = relationship("Expense", back_populates="notes")
    actor = relationship("User")


class TripNote(NoteRecord, Base):
    __tablename__ = "workflow_trip_note"

    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("trips_trip.id"), index=True
    )

    trip = relationship("Trip", back_populates="notes")
    actor = relationship("User")
