from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tripspend.api.deps import get_current_user, require_role
from tripspend.core.db import db_session
from tripspend.modules.identity.models import User, UserRole
from tripspend.modules.policy.schemas import PolicyCreate, PolicyOut, PolicyUpdate
from tripspend.modules.policy.service import (
    create_policy,
    deactivate_policy,
    get_policy,
    list_policies,
    update_policy,
)

router = APIRouter(tags=["policy"])


@router.get("/policies", response_model=list[PolicyOut])
def list_policies_endpoint(
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> list[PolicyOut]:
    policies = list_policies(session, tenant_id=user.tenant_id)
    return [PolicyOut.model_validate(p, from_attributes=True) for p in policies]


@router.post("/policies", response_model=PolicyOut)
def create_policy_endpoint(
    payload: PolicyCreate,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> PolicyOut:
    policy = create_policy(session, tenant_id=user.tenant_id, **payload.model_dump())
    return PolicyOut.model_validate(policy, from_attributes=True)


@router.get("/policies/{policy_id}", response_model=PolicyOut)
def get_policy_endpoint(
    policy_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> PolicyOut:
    policy = get_policy(session, tenant_id=user.tenant_id, policy_id=policy_id)
    return PolicyOut.model_validate(policy, from_attributes=True)


@router.patch("/policies/{policy_id}", response_model=PolicyOut)
def update_policy_endpoint(
    policy_id: uuid.UUID,
    payload: PolicyUpdate,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> PolicyOut:
    policy = update_policy(
        session,
        tenant_id=user.tenant_id,
        policy_id=policy_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return PolicyOut.model_validate(policy, from_attributes=True)


@router.delete("/policies/{policy_id}", status_code=204)
def delete_policy_endpoint(
    policy_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> None:
    deactivate_policy(session, tenant_id=user.tenant_id, policy_id=policy_id)
