from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest

from tripspend.core.config import settings
from tripspend.core.errors import BusinessRuleError, NotFoundError
from tripspend.modules.expenses.models import ExpenseCategory
from tripspend.modules.expenses.service import create_expense
from tripspend.modules.policy.service import list_policies
from tripspend.modules.tenants.service import (
    DEFAULT_POLICIES,
    create_tenant,
    get_tenant,
    update_tenant,
)


def test_every_tenant_uses_the_configured_base_currency(session, org):
    tenant = create_tenant(session, name="Filial Lisboa", timezone="Europe/Lisbon")
    assert tenant.base_currency == settings.base_currency == "BRL"

    with pytest.raises(TypeError):
        create_tenant(session, name="Filial NY", base_currency="USD")

    expense = create_expense(
        session,
        user=org.collaborator,
        category=ExpenseCategory.OTHER,
        expense_date=date(2026, 4, 2),
        amount=Decimal("55.00"),
        currency="USD",
        cost_center_id=org.sales.id,
    )
    # USD is converted into the tenant's currency at the 5.50 default
    assert org.tenant.base_currency == "BRL"
    assert expense.amount_base == Decimal("10.00")


def test_create_seeds_default_policies(session):
    tenant = create_tenant(session, name="Acme")
    seeded = create_tenant(session, name="Vazia", seed_policies=False)

    assert len(list_policies(session, tenant_id=tenant.id)) == len(DEFAULT_POLICIES)
    assert list_policies(session, tenant_id=seeded.id) == []


def test_create_validates_name_and_timezone(session):
    with pytest.raises(BusinessRuleError) as exc:
        create_tenant(session, name="   ")
    assert exc.value.detail == "Nome da empresa é obrigatório"

    with pytest.raises(BusinessRuleError) as exc:
        create_tenant(session, name="Acme", timezone="Mars/Olympus")
    assert exc.value.detail == "Fuso horário inválido"


def test_duplicate_document_is_rejected(session):
    create_tenant(session, name="Acme", document="12.345.678/0001-90")
    with pytest.raises(BusinessRuleError) as exc:
        create_tenant(session, name="Acme 2", document="12.345.678/0001-90")
    assert exc.value.detail == "Documento já cadastrado"


def test_update_changes_name_timezone_and_document(session):
    tenant = create_tenant(session, name="Acme")

    updated = update_tenant(
        session,
        tenant_id=tenant.id,
        changes={"name": " Acme Viagens ", "timezone": "America/Manaus", "document": ""},
    )
    assert updated.name == "Acme Viagens"
    assert updated.timezone == "America/Manaus"
    assert updated.document is None
    assert updated.base_currency == "BRL"

    with pytest.raises(BusinessRuleError):
        update_tenant(session, tenant_id=tenant.id, changes={"timezone": "Nowhere/City"})


def test_get_unknown_tenant_is_not_found(session):
    with pytest.raises(NotFoundError):
        get_tenant(session, tenant_id=uuid.uuid4())
