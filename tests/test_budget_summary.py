from __future__ import annotations

import io
from datetime import date
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from tripspend.core.errors import BusinessRuleError, NotFoundError
from tripspend.modules.budgets.models import BudgetPeriod
from tripspend.modules.budgets.service import (
    create_budget,
    delete_budget,
    export_budget_summary_xlsx,
    get_budget,
    get_budget_summary,
    update_budget,
    variance_percentage,
)
from tripspend.modules.expenses.models import ExpenseCategory, ExpenseStatus
from tripspend.modules.expenses.service import create_expense
from tripspend.modules.org.service import create_project


def _spent(session, org, amount, *, status=ExpenseStatus.APPROVED, project=None, when=None):
    expense = create_expense(
        session,
        user=org.collaborator,
        category=ExpenseCategory.OTHER,
        expense_date=when or date(2026, 3, 10),
        amount=Decimal(amount),
        cost_center_id=org.sales.id,
        project_id=project.id if project else None,
        has_receipt=True,
    )
    expense.status = status
    session.add(expense)
    session.commit()
    return expense


def test_variance_percentage_handles_zero_target():
    assert variance_percentage(Decimal("100"), Decimal("0")) == Decimal("0.00")
    assert variance_percentage(Decimal("-250"), Decimal("1000")) == Decimal("-25.00")


def test_summary_measures_approved_and_reimbursed_spend(session, org):
    create_budget(
        session,
        tenant_id=org.tenant.id,
        year=2026,
        period=BudgetPeriod.YEARLY,
        cost_center_id=org.sales.id,
        amount=Decimal("50000"),
    )
    _spent(session, org, "40000")
    _spent(session, org, "22000", status=ExpenseStatus.REIMBURSED)
    # ignored: not yet decided, rejected, other year
    _spent(session, org, "999", status=ExpenseStatus.SUBMITTED)
    _spent(session, org, "888", status=ExpenseStatus.REJECTED)
    _spent(session, org, "777", when=date(2025, 12, 31))

    summary = get_budget_summary(session, tenant_id=org.tenant.id, year=2026)

    assert len(summary.lines) == 1
    line = summary.lines[0]
    assert line.cost_center_name == "Comercial"
    assert line.budget == Decimal("50000.00")
    assert line.actual == Decimal("62000.00")
    assert line.variance == Decimal("12000.00")
    assert line.variance_percentage == Decimal("24.00")
    assert summary.total_variance_percentage == Decimal("24.00")


def test_project_budget_only_counts_its_project(session, org):
    project = create_project(
        session, tenant_id=org.tenant.id, name="Feira", code="feira", cost_center_id=org.sales.id
    )
    create_budget(
        session,
        tenant_id=org.tenant.id,
        year=2026,
        period=BudgetPeriod.YEARLY,
        cost_center_id=org.sales.id,
        amount=Decimal("1000"),
    )
    create_budget(
        session,
        tenant_id=org.tenant.id,
        year=2026,
        period=BudgetPeriod.YEARLY,
        cost_center_id=org.sales.id,
        project_id=project.id,
        amount=Decimal("500"),
    )
    _spent(session, org, "300")
    _spent(session, org, "450", project=project)

    summary = get_budget_summary(session, tenant_id=org.tenant.id, year=2026)
    actual = {line.project_name: line.actual for line in summary.lines}
    assert actual == {None: Decimal("300.00"), "Feira": Decimal("450.00")}
    assert summary.total_budget == Decimal("1500.00")
    assert summary.total_spent == Decimal("750.00")


def test_duplicate_budget_is_rejected(session, org):
    kwargs = dict(
        tenant_id=org.tenant.id,
        year=2026,
        period=BudgetPeriod.QUARTERLY,
        cost_center_id=org.sales.id,
        amount=Decimal("100"),
    )
    create_budget(session, **kwargs)
    with pytest.raises(BusinessRuleError) as exc:
        create_budget(session, **kwargs)
    assert exc.value.detail == "Orçamento já existe para este período e centro de custo"

    # another period is a different scope
    other = create_budget(session, **{**kwargs, "period": BudgetPeriod.MONTHLY})
    with pytest.raises(BusinessRuleError):
        update_budget(
            session,
            tenant_id=org.tenant.id,
            budget_id=other.id,
            changes={"period": BudgetPeriod.QUARTERLY},
        )


def test_update_and_delete(session, org, other_org):
    budget = create_budget(
        session,
        tenant_id=org.tenant.id,
        year=2026,
        period=BudgetPeriod.YEARLY,
        cost_center_id=org.sales.id,
        amount=Decimal("100"),
    )
    with pytest.raises(BusinessRuleError):
        update_budget(
            session,
            tenant_id=org.tenant.id,
            budget_id=budget.id,
            changes={"amount": Decimal("-1")},
        )

    updated = update_budget(
        session,
        tenant_id=org.tenant.id,
        budget_id=budget.id,
        changes={"amount": Decimal("250"), "cost_center_id": org.ops.id, "notes": "Revisado"},
    )
    assert updated.amount == Decimal("250")
    assert updated.cost_center_id == org.ops.id
    assert updated.notes == "Revisado"

    with pytest.raises(NotFoundError):
        get_budget(session, tenant_id=other_org.tenant.id, budget_id=budget.id)

    delete_budget(session, tenant_id=org.tenant.id, budget_id=budget.id)
    with pytest.raises(NotFoundError):
        get_budget(session, tenant_id=org.tenant.id, budget_id=budget.id)


def test_export_summary_xlsx(session, org):
    create_budget(
        session,
        tenant_id=org.tenant.id,
        year=2026,
        period=BudgetPeriod.YEARLY,
        cost_center_id=org.sales.id,
        amount=Decimal("2000"),
    )
    _spent(session, org, "500")

    summary = get_budget_summary(session, tenant_id=org.tenant.id, year=2026)
    data = export_budget_summary_xlsx(summary)
    ws = load_workbook(io.BytesIO(data)).active

    assert ws.title == "Orçamento 2026"
    assert ws["A1"].value == "Centro de custo"
    assert ws["A2"].value == "Comercial"
    assert ws["D2"].value == 2000
    assert ws["E2"].value == 500
    assert ws["F2"].value == -1500
    assert ws["G2"].value == -75
    assert ws["A3"].value == "Total"
    assert ws["D2"].number_format == "#,##0.00"
