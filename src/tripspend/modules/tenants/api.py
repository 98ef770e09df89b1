from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tripspend.api.deps import get_current_user, require_role
from tripspend.core.db import db_session
from tripspend.modules.identity.models import User, UserRole
from tripspend.modules.tenants.schemas import TenantOut, TenantUpdate
from tripspend.modules.tenants.service import get_tenant, update_tenant

router = APIRouter(tags=["tenants"])


@router.get("/tenant", response_model=TenantOut)
def get_tenant_endpoint(
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TenantOut:
    tenant = get_tenant(session, tenant_id=user.tenant_id)
    return TenantOut.model_validate(tenant, from_attributes=True)


@router.patch("/tenant", response_model=TenantOut)
def update_tenant_endpoint(
    payload: TenantUpdate,
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> TenantOut:
    tenant = update_tenant(
        session, tenant_id=user.tenant_id, changes=payload.model_dump(exclude_unset=True)
    )
    return TenantOut.model_validate(tenant, from_attributes=True)
