from __future__ import annotations

import uuid
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tripspend.core.config import settings
from tripspend.core.errors import BusinessRuleError, NotFoundError
from tripspend.core.logging import get_logger, log_event
from tripspend.modules.expenses.models import ExpenseCategory
from tripspend.modules.policy.models import Policy
from tripspend.modules.tenants.models import Tenant

logger = get_logger(__name__)

DEFAULT_POLICIES: list[dict] = [
    {
        "category": ExpenseCategory.FOOD,
        "receipt_required_over": Decimal("50.00"),
        "daily_limit": Decimal("120.00"),
        "notes": "Alimentação: recibo obrigatório acima de R$ 50,00, limite diário de R$ 120,00",
    },
    {
        "category": ExpenseCategory.ACCOMMODATION,
        "receipt_required_over": Decimal("0.01"),
        "daily_limit": Decimal("300.00"),
        "notes": "Hospedagem: recibo sempre obrigatório, limite diário de R$ 300,00",
    },
    {
        "category": ExpenseCategory.TRANSPORT,
        "receipt_required_over": Decimal("30.00"),
        "km_rate": Decimal("1.20"),
        "notes": "Transporte: recibo obrigatório acima de R$ 30,00, R$ 1,20 por km",
    },
    {
        "category": ExpenseCategory.TOLL,
        "receipt_required_over": Decimal("0.01"),
        "notes": "Pedágio: recibo sempre obrigatório",
    },
    {
        "category": ExpenseCategory.PARKING,
        "receipt_required_over": Decimal("10.00"),
        "daily_limit": Decimal("50.00"),
        "notes": "Estacionamento: recibo obrigatório acima de R$ 10,00, limite diário de R$ 50,00",
    },
    {
        "category": ExpenseCategory.FUEL,
        "receipt_required_over": Decimal("0.01"),
        "notes": "Combustível: recibo sempre obrigatório",
    },
    {
        "category": ExpenseCategory.OTHER,
        "receipt_required_over": Decimal("20.00"),
        "notes": "Outros: recibo obrigatório acima de R$ 20,00",
    },
]


def _validate_timezone(value: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise BusinessRuleError("Fuso horário inválido") from e
    return value


def create_tenant(
    session: Session,
    *,
    name: str,
    document: str | None = None,
    timezone: str | None = None,
    seed_policies: bool = True,
) -> Tenant:
    name = name.strip()
    if not name:
        raise BusinessRuleError("Nome da empresa é obrigatório")

    tenant = Tenant(
        name=name,
        document=(document or "").strip() or None,
        # FX rates are quoted against one configured currency, shared by every tenant
        base_currency=settings.base_currency,
        timezone=_validate_timezone(timezone or settings.default_timezone),
        is_active=True,
    )
    session.add(tenant)
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        raise BusinessRuleError("Documento já cadastrado") from e

    if seed_policies:
        for defaults in DEFAULT_POLICIES:
            session.add(Policy(tenant_id=tenant.id, active=True, **defaults))

    session.commit()
    session.refresh(tenant)
    log_event(logger, "tenant.created", tenant_id=str(tenant.id), seeded=seed_policies)
    return tenant


def get_tenant(session: Session, *, tenant_id: uuid.UUID) -> Tenant:
    tenant = session.scalar(select(Tenant).where(Tenant.id == tenant_id))
    if not tenant:
        raise NotFoundError("Empresa não encontrada")
    return tenant


def update_tenant(session: Session, *, tenant_id: uuid.UUID, changes: dict) -> Tenant:
    tenant = get_tenant(session, tenant_id=tenant_id)
    if changes.get("name") is not None:
        name = changes["name"].strip()
        if not name:
            raise BusinessRuleError("Nome da empresa é obrigatório")
        tenant.name = name
    if changes.get("timezone") is not None:
        tenant.timezone = _validate_timezone(changes["timezone"])
    if "document" in changes:
        tenant.document = (changes["document"] or "").strip() or None
    session.add(tenant)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise BusinessRuleError("Documento já cadastrado") from e
    session.refresh(tenant)
    return tenant
