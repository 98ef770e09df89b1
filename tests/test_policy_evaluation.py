from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from tripspend.core.errors import BusinessRuleError
from tripspend.modules.expenses.models import ExpenseCategory, ExpenseStatus
from tripspend.modules.expenses.service import create_expense, submit_expense
from tripspend.modules.policy.service import (
    PolicyVerdict,
    create_policy,
    deactivate_policy,
    evaluate_policy,
    find_active_policy,
    list_policies,
    update_policy,
)

DAY = date(2026, 3, 10)


def _evaluate(session, org, *, amount, has_receipt=False, category=ExpenseCategory.FOOD):
    return evaluate_policy(
        session,
        tenant_id=org.tenant.id,
        category=category,
        expense_date=DAY,
        user_id=org.collaborator.id,
        amount_base=Decimal(amount),
        has_receipt=has_receipt,
    )


def test_new_tenant_gets_default_policies(session, org):
    policies = {p.category: p for p in list_policies(session, tenant_id=org.tenant.id)}
    assert set(policies) == set(ExpenseCategory)
    food = policies[ExpenseCategory.FOOD]
    assert food.receipt_required_over == Decimal("50.00")
    assert food.daily_limit == Decimal("120.00")
    assert policies[ExpenseCategory.TRANSPORT].km_rate == Decimal("1.20")


def test_receipt_threshold_is_inclusive(session, org):
    below = _evaluate(session, org, amount="49.99")
    assert not below.receipt_required
    assert below.valid

    at = _evaluate(session, org, amount="50.00")
    assert at.receipt_required
    assert at.receipt_missing
    assert not at.valid
    assert at.errors == ["Recibo obrigatório para valores acima de R$ 50.00"]

    with_receipt = _evaluate(session, org, amount="50.00", has_receipt=True)
    assert with_receipt.receipt_required
    assert not with_receipt.receipt_missing
    assert with_receipt.valid


def test_missing_receipt_blocks_submission(session, org):
    expense = create_expense(
        session,
        user=org.collaborator,
        category=ExpenseCategory.FOOD,
        expense_date=DAY,
        amount=Decimal("89.90"),
        cost_center_id=org.sales.id,
    )
    assert expense.policy_check["valid"] is False
    assert expense.policy_check["receipt_missing"] is True

    with pytest.raises(BusinessRuleError) as exc:
        submit_expense(session, expense_id=expense.id, user=org.collaborator)
    assert exc.value.status_code == 400
    assert exc.value.detail == (
        "Despesa não está em conformidade com a política: "
        "Recibo obrigatório para valores acima de R$ 50.00"
    )
    session.refresh(expense)
    assert expense.status == ExpenseStatus.DRAFT


def test_daily_limit_breach_is_only_a_warning(session, org):
    earlier = create_expense(
        session,
        user=org.collaborator,
        category=ExpenseCategory.FOOD,
        expense_date=DAY,
        amount=Decimal("100.00"),
        cost_center_id=org.sales.id,
        has_receipt=True,
    )
    submit_expense(session, expense_id=earlier.id, user=org.collaborator)

    verdict = _evaluate(session, org, amount="30.00")
    assert verdict.valid
    assert verdict.exceeds_daily_limit
    assert verdict.daily_spent == Decimal("130.00")
    assert verdict.daily_limit == Decimal("120.00")
    assert verdict.warnings == ["Limite diário excedido (R$ 120.00 - gasto hoje: R$ 130.00)"]
    assert verdict.errors == []


def test_daily_total_ignores_drafts_other_days_and_the_expense_itself(session, org):
    submitted = create_expense(
        session,
        user=org.collaborator,
        category=ExpenseCategory.FOOD,
        expense_date=DAY,
        amount=Decimal("100.00"),
        cost_center_id=org.sales.id,
        has_receipt=True,
    )
    submit_expense(session, expense_id=submitted.id, user=org.collaborator)
    create_expense(
        session,
        user=org.collaborator,
        category=ExpenseCategory.FOOD,
        expense_date=DAY,
        amount=Decimal("40.00"),
        cost_center_id=org.sales.id,
    )

    other_day = evaluate_policy(
        session,
        tenant_id=org.tenant.id,
        category=ExpenseCategory.FOOD,
        expense_date=date(2026, 3, 11),
        user_id=org.collaborator.id,
        amount_base=Decimal("30.00"),
        has_receipt=False,
    )
    assert other_day.daily_spent == Decimal("30.00")
    assert not other_day.exceeds_daily_limit

    same_expense = evaluate_policy(
        session,
        tenant_id=org.tenant.id,
        category=ExpenseCategory.FOOD,
        expense_date=DAY,
        user_id=org.collaborator.id,
        amount_base=Decimal("100.00"),
        has_receipt=True,
        exclude_expense_id=submitted.id,
    )
    assert same_expense.daily_spent == Decimal("100.00")
    assert not same_expense.exceeds_daily_limit


def test_category_without_active_policy_is_always_valid(session, org):
    food = find_active_policy(session, tenant_id=org.tenant.id, category=ExpenseCategory.FOOD)
    deactivate_policy(session, tenant_id=org.tenant.id, policy_id=food.id)

    verdict = _evaluate(session, org, amount="999.00")
    assert verdict == PolicyVerdict()
    assert verdict.valid


def test_one_active_policy_per_category(session, org):
    with pytest.raises(HTTPException) as exc:
        create_policy(
            session,
            tenant_id=org.tenant.id,
            category=ExpenseCategory.FOOD,
            receipt_required_over=Decimal("10"),
        )
    assert exc.value.status_code == 400

    food = find_active_policy(session, tenant_id=org.tenant.id, category=ExpenseCategory.FOOD)
    deactivate_policy(session, tenant_id=org.tenant.id, policy_id=food.id)
    replacement = create_policy(
        session,
        tenant_id=org.tenant.id,
        category=ExpenseCategory.FOOD,
        receipt_required_over=Decimal("10"),
    )
    assert (
        find_active_policy(session, tenant_id=org.tenant.id, category=ExpenseCategory.FOOD).id
        == replacement.id
    )


def test_updated_limits_apply_to_next_evaluation(session, org):
    food = find_active_policy(session, tenant_id=org.tenant.id, category=ExpenseCategory.FOOD)
    update_policy(
        session,
        tenant_id=org.tenant.id,
        policy_id=food.id,
        changes={"receipt_required_over": Decimal("100.00"), "daily_limit": None},
    )

    verdict = _evaluate(session, org, amount="89.90")
    assert verdict.valid
    assert not verdict.receipt_required
    assert verdict.daily_spent is None


def test_verdict_json_round_trip():
    verdict = PolicyVerdict(
        receipt_required=True,
        exceeds_daily_limit=True,
        daily_limit=Decimal("120"),
        daily_spent=Decimal("130.5"),
        warnings=["w"],
    )
    data = verdict.to_json()
    assert data["valid"] is True
    assert data["daily_spent"] == "130.50"
    assert PolicyVerdict.from_json(data).daily_spent == Decimal("130.50")
