from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tripspend.core.errors import BusinessRuleError, NotFoundError
from tripspend.core.logging import get_logger, log_event
from tripspend.modules.org.models import CostCenter, Project

logger = get_logger(__name__)


def create_cost_center(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    name: str,
    code: str,
    description: str | None = None,
) -> CostCenter:
    name = name.strip()
    code = code.strip().upper()
    if not name or not code:
        raise BusinessRuleError("Nome e código do centro de custo são obrigatórios")
    cost_center = CostCenter(
        tenant_id=tenant_id, name=name, code=code, description=description, active=True
    )
    session.add(cost_center)
    session.commit()
    session.refresh(cost_center)
    log_event(logger, "cost_center.created", cost_center_id=str(cost_center.id), code=code)
    return cost_center


def list_cost_centers(session: Session, *, tenant_id: uuid.UUID) -> list[CostCenter]:
    return list(
        session.scalars(
            select(CostCenter)
            .where(CostCenter.tenant_id == tenant_id, CostCenter.active.is_(True))
            .order_by(CostCenter.name.asc())
        )
    )


def get_cost_center(
    session: Session, *, tenant_id: uuid.UUID, cost_center_id: uuid.UUID
) -> CostCenter:
    cost_center = session.scalar(
        select(CostCenter).where(
            CostCenter.id == cost_center_id, CostCenter.tenant_id == tenant_id
        )
    )
    if not cost_center:
        raise NotFoundError("Centro de custo não encontrado")
    return cost_center


def require_active_cost_center(
    session: Session, *, tenant_id: uuid.UUID, cost_center_id: uuid.UUID
) -> CostCenter:
    cost_center = get_cost_center(session, tenant_id=tenant_id, cost_center_id=cost_center_id)
    if not cost_center.active:
        raise NotFoundError("Centro de custo não encontrado")
    return cost_center


def update_cost_center(
    session: Session, *, tenant_id: uuid.UUID, cost_center_id: uuid.UUID, changes: dict
) -> CostCenter:
    cost_center = get_cost_center(session, tenant_id=tenant_id, cost_center_id=cost_center_id)
    if changes.get("name") is not None:
        cost_center.name = changes["name"].strip()
    if changes.get("code") is not None:
        cost_center.code = changes["code"].strip().upper()
    if "description" in changes:
        cost_center.description = changes["description"]
    session.add(cost_center)
    session.commit()
    session.refresh(cost_center)
    return cost_center


def deactivate_cost_center(
    session: Session, *, tenant_id: uuid.UUID, cost_center_id: uuid.UUID
) -> None:
    cost_center = get_cost_center(session, tenant_id=tenant_id, cost_center_id=cost_center_id)
    cost_center.active = False
    session.add(cost_center)
    session.commit()
    log_event(logger, "cost_center.deactivated", cost_center_id=str(cost_center.id))


def create_project(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    name: str,
    code: str,
    cost_center_id: uuid.UUID | None = None,
    description: str | None = None,
) -> Project:
    code = code.strip().upper()
    existing = session.scalar(
        select(Project.id).where(Project.tenant_id == tenant_id, Project.code == code)
    )
    if existing:
        raise BusinessRuleError("Código do projeto já existe")

    if cost_center_id:
        require_active_cost_center(session, tenant_id=tenant_id, cost_center_id=cost_center_id)

    project = Project(
        tenant_id=tenant_id,
        cost_center_id=cost_center_id,
        name=name.strip(),
        code=code,
        description=description,
        active=True,
    )
    session.add(project)
    try:
        session.commit()
    except IntegrityError as e:
        # concurrent create with the same code
        session.rollback()
        raise BusinessRuleError("Código do projeto já existe") from e
    session.refresh(project)
    log_event(logger, "project.created", project_id=str(project.id), code=code)
    return project


def list_projects(session: Session, *, tenant_id: uuid.UUID) -> list[Project]:
    return list(
        session.scalars(
            select(Project)
            .where(Project.tenant_id == tenant_id, Project.active.is_(True))
            .order_by(Project.name.asc())
        )
    )


def get_project(session: Session, *, tenant_id: uuid.UUID, project_id: uuid.UUID) -> Project:
    project = session.scalar(
        select(Project).where(Project.id == project_id, Project.tenant_id == tenant_id)
    )
    if not project:
        raise NotFoundError("Projeto não encontrado")
    return project


def require_active_project(
    session: Session, *, tenant_id: uuid.UUID, project_id: uuid.UUID
) -> Project:
    project = get_project(session, tenant_id=tenant_id, project_id=project_id)
    if not project.active:
        raise NotFoundError("Projeto não encontrado")
    return project


def update_project(
    session: Session, *, tenant_id: uuid.UUID, project_id: uuid.UUID, changes: dict
) -> Project:
    project = get_project(session, tenant_id=tenant_id, project_id=project_id)
    if changes.get("code") is not None:
        code = changes["code"].strip().upper()
        clash = session.scalar(
            select(Project.id).where(
                Project.tenant_id == tenant_id, Project.code == code, Project.id != project.id
            )
        )
        if clash:
            raise BusinessRuleError("Código do projeto já existe")
        project.code = code
    if changes.get("name") is not None:
        project.name = changes["name"].strip()
    if "cost_center_id" in changes:
        cost_center_id = changes["cost_center_id"]
        if cost_center_id:
            require_active_cost_center(
                session, tenant_id=tenant_id, cost_center_id=cost_center_id
            )
        project.cost_center_id = cost_center_id
    if "description" in changes:
        project.description = changes["description"]
    session.add(project)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise BusinessRuleError("Código do projeto já existe") from e
    session.refresh(project)
    return project


def deactivate_project(session: Session, *, tenant_id: uuid.UUID, project_id: uuid.UUID) -> None:
    project = get_project(session, tenant_id=tenant_id, project_id=project_id)
    project.active = False
    session.add(project)
    session.commit()
    log_event(logger, "project.deactivated", project_id=str(project.id))
