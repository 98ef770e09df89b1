"""Per-request visibility rules for tenant-owned records.

An ``AccessScope`` is computed once from the calling user and handed to list and
lookup queries, so each service applies the same role rules:

* ``COLLABORATOR`` sees only records they own.
* ``ADMIN`` sees every record of the tenant.
* ``MANAGER`` sees their own records plus records booked to the cost centers they are
  assigned to. A manager without any assignment sees the whole tenant.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from tripspend.modules.identity.models import ManagerCostCenter, User, UserRole


class ScopeKind(str, enum.Enum):
    SELF = "SELF"
    TENANT_WIDE = "TENANT_WIDE"
    COST_CENTERS = "COST_CENTERS"


@dataclass(frozen=True)
class AccessScope:
    tenant_id: uuid.UUID
    user_id: uuid.UUID
    kind: ScopeKind
    cost_center_ids: frozenset[uuid.UUID] = field(default_factory=frozenset)

    def apply(self, stmt: Select, *, tenant_column, owner_column, cost_center_column) -> Select:
        stmt = stmt.where(tenant_column == self.tenant_id)
        if self.kind == ScopeKind.SELF:
            return stmt.where(owner_column == self.user_id)
        if self.kind == ScopeKind.COST_CENTERS:
            return stmt.where(
                or_(
                    owner_column == self.user_id,
                    cost_center_column.in_(self.cost_center_ids),
                )
            )
        return stmt

    def allows(
        self, *, tenant_id: uuid.UUID, owner_id: uuid.UUID, cost_center_id: uuid.UUID | None
    ) -> bool:
        if tenant_id != self.tenant_id:
            return False
        if self.kind == ScopeKind.TENANT_WIDE:
            return True
        if owner_id == self.user_id:
            return True
        return self.kind == ScopeKind.COST_CENTERS and cost_center_id in self.cost_center_ids


def access_scope_for(session: Session, *, user: User) -> AccessScope:
    if user.role == UserRole.ADMIN:
        return AccessScope(tenant_id=user.tenant_id, user_id=user.id, kind=ScopeKind.TENANT_WIDE)
    if user.role == UserRole.MANAGER:
        ids = frozenset(
            session.scalars(
                select(ManagerCostCenter.cost_center_id).where(ManagerCostCenter.user_id == user.id)
            )
        )
        if not ids:
            return AccessScope(
                tenant_id=user.tenant_id, user_id=user.id, kind=ScopeKind.TENANT_WIDE
            )
        return AccessScope(
            tenant_id=user.tenant_id,
            user_id=user.id,
            kind=ScopeKind.COST_CENTERS,
            cost_center_ids=ids,
        )
    return AccessScope(tenant_id=user.tenant_id, user_id=user.id, kind=ScopeKind.SELF)
