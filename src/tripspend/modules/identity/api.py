from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from tripspend.api.deps import get_current_user, require_role
from tripspend.core.db import db_session
from tripspend.core.security import create_access_token
from tripspend.modules.identity.models import User, UserRole
from tripspend.modules.identity.schemas import (
    CostCenterAssignment,
    TokenOut,
    UserCreate,
    UserOut,
    UserUpdate,
)
from tripspend.modules.identity.service import (
    assign_cost_center,
    authenticate_user,
    create_user,
    get_user,
    list_users,
    unassign_cost_center,
    update_user,
)

router = APIRouter(tags=["identity"])


@router.post("/auth/token", response_model=TokenOut)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(db_session),
) -> TokenOut:
    user = authenticate_user(session, email=form_data.username, password=form_data.password)
    token = create_access_token(subject=str(user.id), tenant_id=str(user.tenant_id))
    return TokenOut(access_token=token)


@router.get("/auth/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(user, from_attributes=True)


@router.get("/users", response_model=list[UserOut])
def list_users_endpoint(
    session: Session = Depends(db_session),
    admin: User = Depends(require_role(UserRole.ADMIN)),
) -> list[UserOut]:
    users = list_users(session, tenant_id=admin.tenant_id)
    return [UserOut.model_validate(u, from_attributes=True) for u in users]


@router.post("/users", response_model=UserOut)
def create_user_endpoint(
    payload: UserCreate,
    session: Session = Depends(db_session),
    admin: User = Depends(require_role(UserRole.ADMIN)),
) -> UserOut:
    user = create_user(
        session,
        tenant_id=admin.tenant_id,
        email=str(payload.email),
        password=payload.password,
        role=payload.role,
        name=payload.name,
    )
    return UserOut.model_validate(user, from_attributes=True)


@router.get("/users/{user_id}", response_model=UserOut)
def get_user_endpoint(
    user_id: uuid.UUID,
    session: Session = Depends(db_session),
    admin: User = Depends(require_role(UserRole.ADMIN)),
) -> UserOut:
    user = get_user(session, tenant_id=admin.tenant_id, user_id=user_id)
    return UserOut.model_validate(user, from_attributes=True)


@router.patch("/users/{user_id}", response_model=UserOut)
def update_user_endpoint(
    user_id: uuid.UUID,
    payload: UserUpdate,
    session: Session = Depends(db_session),
    admin: User = Depends(require_role(UserRole.ADMIN)),
) -> UserOut:
    user = update_user(
        session,
        tenant_id=admin.tenant_id,
        user_id=user_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return UserOut.model_validate(user, from_attributes=True)


@router.post("/users/{user_id}/cost-centers", status_code=204)
def assign_cost_center_endpoint(
    user_id: uuid.UUID,
    payload: CostCenterAssignment,
    session: Session = Depends(db_session),
    admin: User = Depends(require_role(UserRole.ADMIN)),
) -> None:
    assign_cost_center(
        session,
        tenant_id=admin.tenant_id,
        user_id=user_id,
        cost_center_id=payload.cost_center_id,
    )


@router.delete("/users/{user_id}/cost-centers/{cost_center_id}", status_code=204)
def unassign_cost_center_endpoint(
    user_id: uuid.UUID,
    cost_center_id: uuid.UUID,
    session: Session = Depends(db_session),
    admin: User = Depends(require_role(UserRole.ADMIN)),
) -> None:
    unassign_cost_center(
        session, tenant_id=admin.tenant_id, user_id=user_id, cost_center_id=cost_center_id
    )
