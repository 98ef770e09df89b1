from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from tripspend.api.deps import require_role
from tripspend.core.db import db_session
from tripspend.modules.budgets.models import BudgetPeriod
from tripspend.modules.budgets.schemas import (
    BudgetCreate,
    BudgetOut,
    BudgetSummaryOut,
    BudgetUpdate,
)
from tripspend.modules.budgets.service import (
    create_budget,
    delete_budget,
    export_budget_summary_xlsx,
    get_budget,
    get_budget_summary,
    list_budgets,
    update_budget,
)
from tripspend.modules.identity.models import User, UserRole

router = APIRouter(tags=["budgets"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.post("/budgets", response_model=BudgetOut)
def create_budget_endpoint(
    payload: BudgetCreate,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> BudgetOut:
    budget = create_budget(session, tenant_id=user.tenant_id, **payload.model_dump())
    return BudgetOut.model_validate(budget, from_attributes=True)


@router.get("/budgets", response_model=list[BudgetOut])
def list_budgets_endpoint(
    year: int | None = None,
    period: BudgetPeriod | None = None,
    cost_center_id: uuid.UUID | None = None,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN, UserRole.MANAGER)),
) -> list[BudgetOut]:
    budgets = list_budgets(
        session,
        tenant_id=user.tenant_id,
        year=year,
        period=period,
        cost_center_id=cost_center_id,
    )
    return [BudgetOut.model_validate(b, from_attributes=True) for b in budgets]


@router.get("/budgets/summary/{year}", response_model=BudgetSummaryOut)
def budget_summary_endpoint(
    year: int,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN, UserRole.MANAGER)),
) -> BudgetSummaryOut:
    summary = get_budget_summary(session, tenant_id=user.tenant_id, year=year)
    return BudgetSummaryOut.model_validate(summary, from_attributes=True)


@router.get("/budgets/summary/{year}/export")
def budget_summary_export_endpoint(
    year: int,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN, UserRole.MANAGER)),
) -> Response:
    summary = get_budget_summary(session, tenant_id=user.tenant_id, year=year)
    return Response(
        content=export_budget_summary_xlsx(summary),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="orcamento-{year}.xlsx"'},
    )


@router.get("/budgets/{budget_id}", response_model=BudgetOut)
def get_budget_endpoint(
    budget_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN, UserRole.MANAGER)),
) -> BudgetOut:
    budget = get_budget(session, tenant_id=user.tenant_id, budget_id=budget_id)
    return BudgetOut.model_validate(budget, from_attributes=True)


@router.patch("/budgets/{budget_id}", response_model=BudgetOut)
def update_budget_endpoint(
    budget_id: uuid.UUID,
    payload: BudgetUpdate,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> BudgetOut:
    budget = update_budget(
        session,
        tenant_id=user.tenant_id,
        budget_id=budget_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return BudgetOut.model_validate(budget, from_attributes=True)


@router.delete("/budgets/{budget_id}", status_code=204)
def delete_budget_endpoint(
    budget_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> None:
    delete_budget(session, tenant_id=user.tenant_id, budget_id=budget_id)
