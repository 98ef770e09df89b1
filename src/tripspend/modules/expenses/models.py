from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tripspend.core.models import Base, TenantScoped, Timestamped, UUIDPrimaryKey


class ExpenseCategory(str, enum.Enum):
    FOOD = "FOOD"
    ACCOMMODATION = "ACCOMMODATION"
    TRANSPORT = "TRANSPORT"
    FUEL = "FUEL"
    PARKING = "PARKING"
    TOLL = "TOLL"
    OTHER = "OTHER"


class ExpenseStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ADJUSTED = "ADJUSTED"
    REIMBURSED = "REIMBURSED"


class Expense(UUIDPrimaryKey, TenantScoped, Timestamped, Base):
    __tablename__ = "expenses_expense"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), index=True
    )
    cost_center_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("org_cost_center.id"), index=True
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("org_project.id"), nullable=True, index=True
    )
    trip_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("trips_trip.id"), nullable=True, index=True
    )

    category: Mapped[ExpenseCategory] = mapped_column(
        Enum(ExpenseCategory, native_enum=False), index=True
    )
    expense_date: Mapped[date] = mapped_column(Date, index=True)
    currency: Mapped[str] = mapped_column(String(3), default="BRL")
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    amount_base: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    has_receipt: Mapped[bool] = mapped_column(Boolean, default=False)
    vendor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    km_driven: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    status: Mapped[ExpenseStatus] = mapped_column(
        Enum(ExpenseStatus, native_enum=False), index=True, default=ExpenseStatus.DRAFT
    )
    policy_check: Mapped[dict] = mapped_column(JSON, default=dict)

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reimbursed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user = relationship("User")
    cost_center = relationship("CostCenter")
    project = relationship("Project")
    trip = relationship("Trip", back_populates="expenses")
    files = relationship(
        "ExpenseFile",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseFile.created_at",
    )
    notes = relationship(
        "ExpenseNote",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseNote.occurred_at",
    )


class ExpenseFile(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "expenses_expense_file"

    expense_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("expenses_expense.id"), index=True
    )
    filename: Mapped[str] = mapped_column(String(512))
    url: Mapped[str] = mapped_column(Text)
    storage_key: Mapped[str] = mapped_column(String(1024), unique=True)
    mime_type: Mapped[str] = mapped_column(String(200))
    size: Mapped[int] = mapped_column(Integer)

    expense = relationship("Expense", back_populates="files")
