from __future__ import annotations

import uuid

from pydantic import BaseModel, EmailStr

from tripspend.modules.identity.models import UserRole


class UserOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    email: EmailStr
    name: str | None
    role: UserRole
    is_active: bool


class UserBrief(BaseModel):
    id: uuid.UUID
    name: str | None
    email: str


class UserCreate(BaseModel):
    email: EmailStr
    name: str | None = None
    password: str
    role: UserRole = UserRole.COLLABORATOR


class UserUpdate(BaseModel):
    name: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None
    password: str | None = None


class CostCenterAssignment(BaseModel):
    cost_center_id: uuid.UUID


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
