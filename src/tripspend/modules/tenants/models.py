from __future__ import annotations

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from tripspend.core.models import Base, Timestamped, UUIDPrimaryKey


class Tenant(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "tenants_tenant"

    name: Mapped[str] = mapped_column(String(200))
    document: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True)
    base_currency: Mapped[str] = mapped_column(String(3), default="BRL")
    timezone: Mapped[str] = mapped_column(String(64), default="America/Sao_Paulo")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
