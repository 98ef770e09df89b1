"""initial schema

Revision ID: 1b7e3c9a4d20
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "1b7e3c9a4d20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EXPENSE_CATEGORIES = (
    "FOOD",
    "ACCOMMODATION",
    "TRANSPORT",
    "FUEL",
    "PARKING",
    "TOLL",
    "OTHER",
)
NOTE_ACTIONS = (
    "CREATED",
    "SUBMITTED",
    "APPROVED",
    "REJECTED",
    "ADJUSTED",
    "REIMBURSED",
    "STARTED",
    "COMPLETED",
    "ARCHIVED",
    "COMMENT",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "tenants_tenant",
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("document", sa.String(length=32), nullable=True),
        sa.Column("base_currency", sa.String(length=3), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document"),
    )

    op.create_table(
        "org_cost_center",
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants_tenant.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_org_cost_center_tenant_id"), "org_cost_center", ["tenant_id"])
    op.create_index(op.f("ix_org_cost_center_active"), "org_cost_center", ["active"])

    op.create_table(
        "org_project",
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("cost_center_id", sa.Uuid(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants_tenant.id"]),
        sa.ForeignKeyConstraint(["cost_center_id"], ["org_cost_center.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "code", name="uq_project_tenant_code"),
    )
    op.create_index(op.f("ix_org_project_tenant_id"), "org_project", ["tenant_id"])
    op.create_index(op.f("ix_org_project_cost_center_id"), "org_project", ["cost_center_id"])
    op.create_index(op.f("ix_org_project_active"), "org_project", ["active"])

    op.create_table(
        "identity_user",
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("password_hash", sa.String(length=200), nullable=False),
        sa.Column(
            "role",
            sa.Enum("COLLABORATOR", "MANAGER", "ADMIN", name="userrole", native_enum=False),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants_tenant.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_identity_user_email"), "identity_user", ["email"], unique=True)
    op.create_index(op.f("ix_identity_user_role"), "identity_user", ["role"])
    op.create_index(op.f("ix_identity_user_tenant_id"), "identity_user", ["tenant_id"])

    op.create_table(
        "identity_manager_cost_center",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("cost_center_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["identity_user.id"]),
        sa.ForeignKeyConstraint(["cost_center_id"], ["org_cost_center.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "cost_center_id", name="uq_manager_cost_center"),
    )
    op.create_index(
        op.f("ix_identity_manager_cost_center_user_id"),
        "identity_manager_cost_center",
        ["user_id"],
    )
    op.create_index(
        op.f("ix_identity_manager_cost_center_cost_center_id"),
        "identity_manager_cost_center",
        ["cost_center_id"],
    )

    op.create_table(
        "fx_rate",
        sa.Column("rate_date", sa.Date(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("rate", sa.Numeric(18, 8), nullable=False),
        sa.Column("source", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("rate_date", "currency", name="uq_fx_rate_date_currency"),
    )
    op.create_index(op.f("ix_fx_rate_rate_date"), "fx_rate", ["rate_date"])
    op.create_index(op.f("ix_fx_rate_currency"), "fx_rate", ["currency"])

    op.create_table(
        "policy_policy",
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column(
            "category",
            sa.Enum(*EXPENSE_CATEGORIES, name="expensecategory", native_enum=False),
            nullable=False,
        ),
        sa.Column("receipt_required_over", sa.Numeric(12, 2), nullable=True),
        sa.Column("daily_limit", sa.Numeric(12, 2), nullable=True),
        sa.Column("km_rate", sa.Numeric(10, 4), nullable=True),
        sa.Column("per_diem_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants_tenant.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_policy_policy_tenant_id"), "policy_policy", ["tenant_id"])
    op.create_index(op.f("ix_policy_policy_category"), "policy_policy", ["category"])
    op.create_index(op.f("ix_policy_policy_active"), "policy_policy", ["active"])

    op.create_table(
        "trips_trip",
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("requester_id", sa.Uuid(), nullable=False),
        sa.Column("manager_id", sa.Uuid(), nullable=True),
        sa.Column("cost_center_id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("origin", sa.String(length=200), nullable=False),
        sa.Column("destination", sa.String(length=200), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("purpose", sa.Text(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "DRAFT",
                "PENDING_APPROVAL",
                "APPROVED",
                "REJECTED",
                "IN_PROGRESS",
                "COMPLETED",
                "ARCHIVED",
                name="tripstatus",
                native_enum=False,
            ),
            nullable=False,
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants_tenant.id"]),
        sa.ForeignKeyConstraint(["requester_id"], ["identity_user.id"]),
        sa.ForeignKeyConstraint(["manager_id"], ["identity_user.id"]),
        sa.ForeignKeyConstraint(["cost_center_id"], ["org_cost_center.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["org_project.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_trips_trip_tenant_id"), "trips_trip", ["tenant_id"])
    op.create_index(op.f("ix_trips_trip_requester_id"), "trips_trip", ["requester_id"])
    op.create_index(op.f("ix_trips_trip_cost_center_id"), "trips_trip", ["cost_center_id"])
    op.create_index(op.f("ix_trips_trip_status"), "trips_trip", ["status"])

    op.create_table(
        "expenses_expense",
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("cost_center_id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("trip_id", sa.Uuid(), nullable=True),
        sa.Column(
            "category",
            sa.Enum(*EXPENSE_CATEGORIES, name="expensecategory", native_enum=False),
            nullable=False,
        ),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("amount_base", sa.Numeric(12, 2), nullable=False),
        sa.Column("has_receipt", sa.Boolean(), nullable=False),
        sa.Column("vendor", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("km_driven", sa.Numeric(10, 2), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "DRAFT",
                "SUBMITTED",
                "APPROVED",
                "REJECTED",
                "ADJUSTED",
                "REIMBURSED",
                name="expensestatus",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("policy_check", sa.JSON(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reimbursed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants_tenant.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["identity_user.id"]),
        sa.ForeignKeyConstraint(["cost_center_id"], ["org_cost_center.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["org_project.id"]),
        sa.ForeignKeyConstraint(["trip_id"], ["trips_trip.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in (
        "tenant_id",
        "user_id",
        "cost_center_id",
        "project_id",
        "trip_id",
        "category",
        "expense_date",
        "status",
    ):
        op.create_index(op.f(f"ix_expenses_expense_{column}"), "expenses_expense", [column])

    op.create_table(
        "expenses_expense_file",
        sa.Column("expense_id", sa.Uuid(), nullable=False),
        sa.Column("filename", sa.String(length=512), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("storage_key", sa.String(length=1024), nullable=False),
        sa.Column("mime_type", sa.String(length=200), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["expense_id"], ["expenses_expense.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("storage_key"),
    )
    op.create_index(
        op.f("ix_expenses_expense_file_expense_id"), "expenses_expense_file", ["expense_id"]
    )

    for table, parent_column, parent_table in (
        ("workflow_expense_note", "expense_id", "expenses_expense"),
        ("workflow_trip_note", "trip_id", "trips_trip"),
    ):
        op.create_table(
            table,
            sa.Column(parent_column, sa.Uuid(), nullable=False),
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("actor_user_id", sa.Uuid(), nullable=True),
            sa.Column(
                "action",
                sa.Enum(*NOTE_ACTIONS, name="noteaction", native_enum=False),
                nullable=False,
            ),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint([parent_column], [f"{parent_table}.id"]),
            sa.ForeignKeyConstraint(["actor_user_id"], ["identity_user.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f(f"ix_{table}_{parent_column}"), table, [parent_column])

    op.create_table(
        "budgets_budget",
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column(
            "period",
            sa.Enum("YEARLY", "QUARTERLY", "MONTHLY", name="budgetperiod", native_enum=False),
            nullable=False,
        ),
        sa.Column("cost_center_id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("scope_key", sa.String(length=80), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants_tenant.id"]),
        sa.ForeignKeyConstraint(["cost_center_id"], ["org_cost_center.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["org_project.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "year", "period", "scope_key", name="uq_budget_scope"),
    )
    op.create_index(op.f("ix_budgets_budget_tenant_id"), "budgets_budget", ["tenant_id"])
    op.create_index(op.f("ix_budgets_budget_year"), "budgets_budget", ["year"])
    op.create_index(op.f("ix_budgets_budget_cost_center_id"), "budgets_budget", ["cost_center_id"])


def downgrade() -> None:
    op.drop_table("budgets_budget")
    op.drop_table("workflow_trip_note")
    op.drop_table("workflow_expense_note")
    op.drop_table("expenses_expense_file")
    op.drop_table("expenses_expense")
    op.drop_table("trips_trip")
    op.drop_table("policy_policy")
    op.drop_table("fx_rate")
    op.drop_table("identity_manager_cost_center")
    op.drop_table("identity_user")
    op.drop_table("org_project")
    op.drop_table("org_cost_center")
    op.drop_table("tenants_tenant")
