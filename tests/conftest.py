from __future__ import annotations

import os
import shutil
from pathlib import Path
from types import SimpleNamespace

import pytest

# Set env before any tripspend imports (settings/engine are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.tripspend_test.db")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", ".tmp_storage_test")


@pytest.fixture(autouse=True)
def _reset_db_and_storage() -> None:
    import tripspend.core.storage as storage_mod
    import tripspend.models  # noqa: F401
    from tripspend.core.db import engine
    from tripspend.core.models import Base

    storage_mod._storage = None

    storage_path = Path(os.environ["LOCAL_STORAGE_PATH"])
    if storage_path.exists():
        shutil.rmtree(storage_path)

    # Reset DB schema
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield


@pytest.fixture
def session():
    from tripspend.core.db import SessionLocal

    with SessionLocal() as s:
        yield s


def build_org(session, *, name: str = "Acme Viagens", email_prefix: str = "acme"):
    from tripspend.modules.identity.models import UserRole
    from tripspend.modules.identity.service import assign_cost_center, create_user
    from tripspend.modules.org.service import create_cost_center
    from tripspend.modules.tenants.service import create_tenant

    tenant = create_tenant(session, name=name)
    sales = create_cost_center(session, tenant_id=tenant.id, name="Comercial", code="com")
    ops = create_cost_center(session, tenant_id=tenant.id, name="Operações", code="ops")

    def _user(local: str, role: UserRole):
        return create_user(
            session,
            tenant_id=tenant.id,
            email=f"{local}@{email_prefix}.example.com",
            password="pw",
            role=role,
            name=local.title(),
        )

    admin = _user("admin", UserRole.ADMIN)
    manager = _user("manager", UserRole.MANAGER)
    collaborator = _user("ana", UserRole.COLLABORATOR)
    colleague = _user("bruno", UserRole.COLLABORATOR)
    assign_cost_center(
        session, tenant_id=tenant.id, user_id=manager.id, cost_center_id=sales.id
    )
    return SimpleNamespace(
        tenant=tenant,
        sales=sales,
        ops=ops,
        admin=admin,
        manager=manager,
        collaborator=collaborator,
        colleague=colleague,
    )


@pytest.fixture
def org(session):
    return build_org(session)


@pytest.fixture
def other_org(session, org):
    return build_org(session, name="Globex Turismo", email_prefix="globex")
