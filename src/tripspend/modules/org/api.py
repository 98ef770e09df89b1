from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tripspend.api.deps import get_current_user, require_role
from tripspend.core.db import db_session
from tripspend.modules.identity.models import User, UserRole
from tripspend.modules.org.schemas import (
    CostCenterCreate,
    CostCenterOut,
    CostCenterUpdate,
    ProjectCreate,
    ProjectOut,
    ProjectUpdate,
)
from tripspend.modules.org.service import (
    create_cost_center,
    create_project,
    deactivate_cost_center,
    deactivate_project,
    get_cost_center,
    get_project,
    list_cost_centers,
    list_projects,
    update_cost_center,
    update_project,
)

router = APIRouter(tags=["org"])


@router.get("/cost-centers", response_model=list[CostCenterOut])
def list_cost_centers_endpoint(
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> list[CostCenterOut]:
    rows = list_cost_centers(session, tenant_id=user.tenant_id)
    return [CostCenterOut.model_validate(c, from_attributes=True) for c in rows]


@router.post("/cost-centers", response_model=CostCenterOut)
def create_cost_center_endpoint(
    payload: CostCenterCreate,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> CostCenterOut:
    cost_center = create_cost_center(session, tenant_id=user.tenant_id, **payload.model_dump())
    return CostCenterOut.model_validate(cost_center, from_attributes=True)


@router.get("/cost-centers/{cost_center_id}", response_model=CostCenterOut)
def get_cost_center_endpoint(
    cost_center_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> CostCenterOut:
    cost_center = get_cost_center(
        session, tenant_id=user.tenant_id, cost_center_id=cost_center_id
    )
    return CostCenterOut.model_validate(cost_center, from_attributes=True)


@router.patch("/cost-centers/{cost_center_id}", response_model=CostCenterOut)
def update_cost_center_endpoint(
    cost_center_id: uuid.UUID,
    payload: CostCenterUpdate,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> CostCenterOut:
    cost_center = update_cost_center(
        session,
        tenant_id=user.tenant_id,
        cost_center_id=cost_center_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return CostCenterOut.model_validate(cost_center, from_attributes=True)


@router.delete("/cost-centers/{cost_center_id}", status_code=204)
def deactivate_cost_center_endpoint(
    cost_center_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> None:
    deactivate_cost_center(session, tenant_id=user.tenant_id, cost_center_id=cost_center_id)


@router.get("/projects", response_model=list[ProjectOut])
def list_projects_endpoint(
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> list[ProjectOut]:
    rows = list_projects(session, tenant_id=user.tenant_id)
    return [ProjectOut.model_validate(p, from_attributes=True) for p in rows]


@router.post("/projects", response_model=ProjectOut)
def create_project_endpoint(
    payload: ProjectCreate,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> ProjectOut:
    project = create_project(session, tenant_id=user.tenant_id, **payload.model_dump())
    return ProjectOut.model_validate(project, from_attributes=True)


@router.get("/projects/{project_id}", response_model=ProjectOut)
def get_project_endpoint(
    project_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ProjectOut:
    project = get_project(session, tenant_id=user.tenant_id, project_id=project_id)
    return ProjectOut.model_validate(project, from_attributes=True)


@router.patch("/projects/{project_id}", response_model=ProjectOut)
def update_project_endpoint(
    project_id: uuid.UUID,
    payload: ProjectUpdate,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> ProjectOut:
    project = update_project(
        session,
        tenant_id=user.tenant_id,
        project_id=project_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return ProjectOut.model_validate(project, from_attributes=True)


@router.delete("/projects/{project_id}", status_code=204)
def deactivate_project_endpoint(
    project_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> None:
    deactivate_project(session, tenant_id=user.tenant_id, project_id=project_id)
