from __future__ import annotations

import io
import uuid
from dataclasses import dataclass
from decimal import Decimal

from openpyxl import Workbook
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tripspend.core.currencies import quantize_money
from tripspend.core.errors import BusinessRuleError, NotFoundError
from tripspend.core.logging import get_logger, log_event
from tripspend.core.timeutil import year_bounds
from tripspend.modules.budgets.models import Budget, BudgetPeriod, budget_scope_key
from tripspend.modules.expenses.models import Expense, ExpenseStatus
from tripspend.modules.org.service import require_active_cost_center, require_active_project

logger = get_logger(__name__)

SPENT_STATUSES = (ExpenseStatus.APPROVED, ExpenseStatus.REIMBURSED)

DUPLICATE_BUDGET = "Orçamento já existe para este período e centro de custo"


@dataclass(frozen=True)
class BudgetLine:
    budget_id: uuid.UUID
    year: int
    period: BudgetPeriod
    cost_center_id: uuid.UUID
    cost_center_name: str
    project_id: uuid.UUID | None
    project_name: str | None
    budget: Decimal
    actual: Decimal
    variance: Decimal
    variance_percentage: Decimal


@dataclass(frozen=True)
class BudgetSummary:
    year: int
    lines: list[BudgetLine]
    total_budget: Decimal
    total_spent: Decimal
    total_variance: Decimal
    total_variance_percentage: Decimal


def variance_percentage(variance: Decimal, target: Decimal) -> Decimal:
    if not target:
        return Decimal("0.00")
    return quantize_money(variance / target * 100)


def _check_scope_free(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    year: int,
    period: BudgetPeriod,
    scope_key: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    q = select(Budget.id).where(
        Budget.tenant_id == tenant_id,
        Budget.year == year,
        Budget.period == period,
        Budget.scope_key == scope_key,
    )
    if exclude_id is not None:
        q = q.where(Budget.id != exclude_id)
    if session.scalar(q):
        raise BusinessRuleError(DUPLICATE_BUDGET)


def _commit_budget(session: Session, budget: Budget) -> Budget:
    session.add(budget)
    try:
        session.commit()
    except IntegrityError as e:
        # lost a race against a concurrent write for the same scope
        session.rollback()
        raise BusinessRuleError(DUPLICATE_BUDGET) from e
    session.refresh(budget)
    return budget


def create_budget(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    year: int,
    period: BudgetPeriod,
    cost_center_id: uuid.UUID,
    amount: Decimal,
    project_id: uuid.UUID | None = None,
    notes: str | None = None,
) -> Budget:
    if amount < 0:
        raise BusinessRuleError("Valor do orçamento não pode ser negativo")
    require_active_cost_center(session, tenant_id=tenant_id, cost_center_id=cost_center_id)
    if project_id:
        require_active_project(session, tenant_id=tenant_id, project_id=project_id)

    scope_key = budget_scope_key(cost_center_id, project_id)
    _check_scope_free(session, tenant_id=tenant_id, year=year, period=period, scope_key=scope_key)

    budget = _commit_budget(
        session,
        Budget(
            tenant_id=tenant_id,
            year=year,
            period=period,
            cost_center_id=cost_center_id,
            project_id=project_id,
            scope_key=scope_key,
            amount=amount,
            notes=notes,
        ),
    )
    log_event(logger, "budget.created", budget_id=str(budget.id), year=year, period=period.value)
    return budget


def list_budgets(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    year: int | None = None,
    period: BudgetPeriod | None = None,
    cost_center_id: uuid.UUID | None = None,
) -> list[Budget]:
    q = select(Budget).where(Budget.tenant_id == tenant_id)
    if year is not None:
        q = q.where(Budget.year == year)
    if period is not None:
        q = q.where(Budget.period == period)
    if cost_center_id is not None:
        q = q.where(Budget.cost_center_id == cost_center_id)
    return list(session.scalars(q.order_by(Budget.year.desc(), Budget.created_at.asc())))


def get_budget(session: Session, *, tenant_id: uuid.UUID, budget_id: uuid.UUID) -> Budget:
    budget = session.scalar(
        select(Budget).where(Budget.id == budget_id, Budget.tenant_id == tenant_id)
    )
    if not budget:
        raise NotFoundError("Orçamento não encontrado")
    return budget


def update_budget(
    session: Session, *, tenant_id: uuid.UUID, budget_id: uuid.UUID, changes: dict
) -> Budget:
    budget = get_budget(session, tenant_id=tenant_id, budget_id=budget_id)

    year = changes.get("year") or budget.year
    period = changes.get("period") or budget.period
    cost_center_id = changes.get("cost_center_id") or budget.cost_center_id
    project_id = changes["project_id"] if "project_id" in changes else budget.project_id
    amount = changes["amount"] if changes.get("amount") is not None else budget.amount
    if amount < 0:
        raise BusinessRuleError("Valor do orçamento não pode ser negativo")

    if cost_center_id != budget.cost_center_id:
        require_active_cost_center(session, tenant_id=tenant_id, cost_center_id=cost_center_id)
    if project_id and project_id != budget.project_id:
        require_active_project(session, tenant_id=tenant_id, project_id=project_id)

    scope_key = budget_scope_key(cost_center_id, project_id)
    _check_scope_free(
        session,
        tenant_id=tenant_id,
        year=year,
        period=period,
        scope_key=scope_key,
        exclude_id=budget.id,
    )

    budget.year = year
    budget.period = period
    budget.cost_center_id = cost_center_id
    budget.project_id = project_id
    budget.scope_key = scope_key
    budget.amount = amount
    if "notes" in changes:
        budget.notes = changes["notes"]
    budget = _commit_budget(session, budget)
    log_event(logger, "budget.updated", budget_id=str(budget.id))
    return budget


def delete_budget(session: Session, *, tenant_id: uuid.UUID, budget_id: uuid.UUID) -> None:
    budget = get_budget(session, tenant_id=tenant_id, budget_id=budget_id)
    session.delete(budget)
    session.commit()
    log_event(logger, "budget.deleted", budget_id=str(budget_id))


def _actual_spent(session: Session, *, budget: Budget) -> Decimal:
    start, end = year_bounds(budget.year)
    q = select(func.coalesce(func.sum(Expense.amount_base), 0)).where(
        Expense.tenant_id == budget.tenant_id,
        Expense.cost_center_id == budget.cost_center_id,
        Expense.status.in_(SPENT_STATUSES),
        Expense.expense_date >= start,
        Expense.expense_date <= end,
    )
    if budget.project_id is None:
        q = q.where(Expense.project_id.is_(None))
    else:
        q = q.where(Expense.project_id == budget.project_id)
    return quantize_money(Decimal(str(session.scalar(q) or 0)))


def get_budget_summary(session: Session, *, tenant_id: uuid.UUID, year: int) -> BudgetSummary:
    """Compare every budget of ``year`` with what was actually spent.

    Spent means approved or reimbursed expenses, in base currency, dated inside the
    calendar year. Budgets of every period are measured against the full year.
    """
    lines: list[BudgetLine] = []
    for budget in list_budgets(session, tenant_id=tenant_id, year=year):
        target = quantize_money(budget.amount)
        actual = _actual_spent(session, budget=budget)
        variance = actual - target
        lines.append(
            BudgetLine(
                budget_id=budget.id,
                year=budget.year,
                period=budget.period,
                cost_center_id=budget.cost_center_id,
                cost_center_name=budget.cost_center.name,
                project_id=budget.project_id,
                project_name=budget.project.name if budget.project else None,
                budget=target,
                actual=actual,
                variance=variance,
                variance_percentage=variance_percentage(variance, target),
            )
        )

    total_budget = quantize_money(sum((line.budget for line in lines), Decimal("0")))
    total_spent = quantize_money(sum((line.actual for line in lines), Decimal("0")))
    total_variance = total_spent - total_budget
    return BudgetSummary(
        year=year,
        lines=lines,
        total_budget=total_budget,
        total_spent=total_spent,
        total_variance=total_variance,
        total_variance_percentage=variance_percentage(total_variance, total_budget),
    )


def export_budget_summary_xlsx(summary: BudgetSummary) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = f"Orçamento {summary.year}"

    headers = [
        "Centro de custo",
        "Projeto",
        "Período",
        "Orçado (R$)",
        "Realizado (R$)",
        "Variação (R$)",
        "Variação (%)",
    ]
    for col, header in enumerate(headers, start=1):
        ws.cell(row=1, column=col, value=header)
    ws.column_dimensions["A"].width = 30
    ws.column_dimensions["B"].width = 30

    row = 2
    for line in summary.lines:
        ws.cell(row=row, column=1, value=line.cost_center_name)
        ws.cell(row=row, column=2, value=line.project_name)
        ws.cell(row=row, column=3, value=line.period.value)
        ws.cell(row=row, column=4, value=float(line.budget))
        ws.cell(row=row, column=5, value=float(line.actual))
        ws.cell(row=row, column=6, value=float(line.variance))
        ws.cell(row=row, column=7, value=float(line.variance_percentage))
        row += 1

    ws.cell(row=row, column=1, value="Total")
    ws.cell(row=row, column=4, value=float(summary.total_budget))
    ws.cell(row=row, column=5, value=float(summary.total_spent))
    ws.cell(row=row, column=6, value=float(summary.total_variance))
    ws.cell(row=row, column=7, value=float(summary.total_variance_percentage))

    for r in range(2, row + 1):
        for c in (4, 5, 6):
            ws.cell(row=r, column=c).number_format = "#,##0.00"

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
