from __future__ import annotations

from sqlalchemy import select

# isort: off
import tripspend.models  # noqa: F401
# isort: on

from tripspend.core.config import settings
from tripspend.core.db import SessionLocal, engine
from tripspend.core.logging import get_logger, log_event
from tripspend.core.models import Base
from tripspend.core.security import hash_password
from tripspend.modules.identity.models import User, UserRole
from tripspend.modules.tenants.models import Tenant
from tripspend.modules.tenants.service import create_tenant

logger = get_logger(__name__)


def bootstrap() -> None:
    if settings.environment == "dev" and str(settings.database_url).startswith("sqlite"):
        Base.metadata.create_all(engine)

    if not settings.init_tenant_name or not settings.init_admin_email:
        return
    if not settings.init_admin_password:
        return

    email = settings.init_admin_email.strip().lower()
    with SessionLocal() as session:
        tenant = session.scalar(select(Tenant).where(Tenant.name == settings.init_tenant_name))
        if not tenant:
            tenant = create_tenant(session, name=settings.init_tenant_name)

        existing = session.scalar(select(User).where(User.email == email))
        if existing:
            # Ensure existing user is admin
            if existing.role != UserRole.ADMIN:
                existing.role = UserRole.ADMIN
                session.add(existing)
                session.commit()
            return

        session.add(
            User(
                tenant_id=tenant.id,
                email=email,
                name="Admin",
                password_hash=hash_password(settings.init_admin_password),
                role=UserRole.ADMIN,
                is_active=True,
            )
        )
        session.commit()
        log_event(logger, "bootstrap.admin.created", tenant_id=str(tenant.id))
