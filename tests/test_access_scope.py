from __future__ import annotations

from tripspend.modules.identity.access import ScopeKind, access_scope_for
from tripspend.modules.identity.models import UserRole
from tripspend.modules.identity.service import create_user, unassign_cost_center


def test_scope_kind_follows_role(session, org):
    assert access_scope_for(session, user=org.admin).kind == ScopeKind.TENANT_WIDE
    assert access_scope_for(session, user=org.collaborator).kind == ScopeKind.SELF

    scope = access_scope_for(session, user=org.manager)
    assert scope.kind == ScopeKind.COST_CENTERS
    assert scope.cost_center_ids == frozenset({org.sales.id})


def test_manager_without_assignment_sees_tenant(session, org):
    unassign_cost_center(
        session, tenant_id=org.tenant.id, user_id=org.manager.id, cost_center_id=org.sales.id
    )
    assert access_scope_for(session, user=org.manager).kind == ScopeKind.TENANT_WIDE


def test_allows_respects_tenant_owner_and_cost_center(session, org, other_org):
    manager = access_scope_for(session, user=org.manager)
    assert manager.allows(
        tenant_id=org.tenant.id, owner_id=org.colleague.id, cost_center_id=org.sales.id
    )
    assert not manager.allows(
        tenant_id=org.tenant.id, owner_id=org.colleague.id, cost_center_id=org.ops.id
    )
    assert manager.allows(
        tenant_id=org.tenant.id, owner_id=org.manager.id, cost_center_id=org.ops.id
    )

    collaborator = access_scope_for(session, user=org.collaborator)
    assert collaborator.allows(
        tenant_id=org.tenant.id, owner_id=org.collaborator.id, cost_center_id=org.ops.id
    )
    assert not collaborator.allows(
        tenant_id=org.tenant.id, owner_id=org.colleague.id, cost_center_id=org.sales.id
    )

    admin = access_scope_for(session, user=org.admin)
    assert admin.allows(tenant_id=org.tenant.id, owner_id=org.colleague.id, cost_center_id=None)
    assert not admin.allows(
        tenant_id=other_org.tenant.id, owner_id=other_org.colleague.id, cost_center_id=None
    )


def test_new_manager_starts_tenant_wide(session, org):
    manager = create_user(
        session,
        tenant_id=org.tenant.id,
        email="carla@acme.example.com",
        password="pw",
        role=UserRole.MANAGER,
        name="Carla",
    )
    assert access_scope_for(session, user=manager).kind == ScopeKind.TENANT_WIDE
