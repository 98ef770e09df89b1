from __future__ import annotations

import uuid

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from tripspend.core.errors import BusinessRuleError, NotFoundError
from tripspend.core.logging import get_logger, log_event
from tripspend.core.security import hash_password, verify_password
from tripspend.modules.identity.models import ManagerCostCenter, User, UserRole
from tripspend.modules.org.models import CostCenter

logger = get_logger(__name__)


def get_user_by_email(session: Session, *, email: str) -> User | None:
    return session.scalar(select(User).where(User.email == email.strip().lower()))


def create_user(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    email: str,
    password: str,
    role: UserRole,
    name: str | None = None,
) -> User:
    existing = get_user_by_email(session, email=email)
    if existing:
        raise BusinessRuleError("E-mail já cadastrado")

    user = User(
        tenant_id=tenant_id,
        email=email.strip().lower(),
        name=name,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    log_event(logger, "user.created", user_id=str(user.id), role=user.role.value)
    return user


def authenticate_user(session: Session, *, email: str, password: str) -> User:
    user = get_user_by_email(session, email=email)
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciais inválidas")
    return user


def list_users(session: Session, *, tenant_id: uuid.UUID) -> list[User]:
    return list(
        session.scalars(select(User).where(User.tenant_id == tenant_id).order_by(User.email.asc()))
    )


def get_user(session: Session, *, tenant_id: uuid.UUID, user_id: uuid.UUID) -> User:
    user = session.scalar(select(User).where(User.id == user_id, User.tenant_id == tenant_id))
    if not user:
        raise NotFoundError("Usuário não encontrado")
    return user


def update_user(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    changes: dict,
) -> User:
    user = get_user(session, tenant_id=tenant_id, user_id=user_id)
    if "name" in changes:
        user.name = changes["name"]
    if changes.get("role") is not None:
        user.role = changes["role"]
    if changes.get("is_active") is not None:
        user.is_active = changes["is_active"]
    if changes.get("password"):
        user.password_hash = hash_password(changes["password"])
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def assign_cost_center(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    cost_center_id: uuid.UUID,
) -> ManagerCostCenter:
    user = get_user(session, tenant_id=tenant_id, user_id=user_id)
    if user.role != UserRole.MANAGER:
        raise BusinessRuleError("Apenas gestores podem ser vinculados a centros de custo")

    cost_center = session.scalar(
        select(CostCenter).where(
            CostCenter.id == cost_center_id,
            CostCenter.tenant_id == tenant_id,
            CostCenter.active.is_(True),
        )
    )
    if not cost_center:
        raise NotFoundError("Centro de custo não encontrado")

    existing = session.scalar(
        select(ManagerCostCenter).where(
            ManagerCostCenter.user_id == user.id,
            ManagerCostCenter.cost_center_id == cost_center.id,
        )
    )
    if existing:
        return existing

    link = ManagerCostCenter(user_id=user.id, cost_center_id=cost_center.id)
    session.add(link)
    session.commit()
    session.refresh(link)
    log_event(
        logger,
        "user.cost_center.assigned",
        manager_id=str(user.id),
        cost_center_id=str(cost_center.id),
    )
    return link


def unassign_cost_center(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    cost_center_id: uuid.UUID,
) -> None:
    user = get_user(session, tenant_id=tenant_id, user_id=user_id)
    link = session.scalar(
        select(ManagerCostCenter).where(
            ManagerCostCenter.user_id == user.id,
            ManagerCostCenter.cost_center_id == cost_center_id,
        )
    )
    if not link:
        return
    session.delete(link)
    session.commit()
