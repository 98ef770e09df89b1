from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from tripspend.core.errors import BusinessRuleError, ForbiddenError, NotFoundError
from tripspend.modules.expenses.models import ExpenseCategory, ExpenseStatus
from tripspend.modules.expenses.service import (
    adjust_expense,
    approve_expense,
    comment_expense,
    create_expense,
    get_expense_for_user,
    list_expenses_for_user,
    reimburse_expense,
    reject_expense,
    remove_expense,
    submit_expense,
    update_expense,
)
from tripspend.modules.workflow.models import NoteAction


def _draft(
    session,
    org,
    *,
    user=None,
    amount="100.00",
    cost_center=None,
    expense_date=date(2026, 4, 2),
    **kwargs,
):
    kwargs.setdefault("category", ExpenseCategory.OTHER)
    kwargs.setdefault("has_receipt", True)
    return create_expense(
        session,
        user=user or org.collaborator,
        expense_date=expense_date,
        amount=Decimal(amount),
        cost_center_id=(cost_center or org.sales).id,
        **kwargs,
    )


def _submitted(session, org, **kwargs):
    expense = _draft(session, org, **kwargs)
    return submit_expense(session, expense_id=expense.id, user=expense.user)


def test_create_records_base_amount_policy_and_note(session, org):
    expense = _draft(session, org, currency="usd", amount="55.00")

    assert expense.status == ExpenseStatus.DRAFT
    assert expense.currency == "USD"
    assert expense.amount_base == Decimal("10.00")
    assert expense.policy_check["valid"] is True
    assert [n.action for n in expense.notes] == [NoteAction.CREATED]


def test_create_rejects_cost_center_of_another_tenant(session, org, other_org):
    with pytest.raises(NotFoundError):
        _draft(session, org, cost_center=other_org.sales)


def test_full_happy_path_to_reimbursed(session, org):
    expense = _submitted(session, org)
    assert expense.status == ExpenseStatus.SUBMITTED
    assert expense.submitted_at is not None

    approved = approve_expense(session, expense_id=expense.id, user=org.manager, note="ok")
    assert approved.status == ExpenseStatus.APPROVED
    assert approved.decided_at is not None

    paid = reimburse_expense(session, expense_id=expense.id, user=org.admin)
    assert paid.status == ExpenseStatus.REIMBURSED
    assert paid.reimbursed_at is not None
    assert [n.action for n in paid.notes] == [
        NoteAction.CREATED,
        NoteAction.SUBMITTED,
        NoteAction.APPROVED,
        NoteAction.REIMBURSED,
    ]


@pytest.mark.parametrize(
    "decide",
    [
        lambda s, e, u: approve_expense(s, expense_id=e.id, user=u),
        lambda s, e, u: reject_expense(s, expense_id=e.id, user=u, reason="não"),
        lambda s, e, u: adjust_expense(
            s, expense_id=e.id, user=u, amount=Decimal("1"), reason="x"
        ),
    ],
)
def test_decisions_require_submitted_state(session, org, decide):
    expense = _draft(session, org)
    with pytest.raises(BusinessRuleError):
        decide(session, expense, org.admin)
    session.refresh(expense)
    assert expense.status == ExpenseStatus.DRAFT


def test_submit_twice_fails(session, org):
    expense = _submitted(session, org)
    with pytest.raises(BusinessRuleError) as exc:
        submit_expense(session, expense_id=expense.id, user=org.collaborator)
    assert exc.value.detail == "Apenas despesas em rascunho podem ser enviadas"


def test_rejected_is_terminal(session, org):
    expense = _submitted(session, org)
    with pytest.raises(BusinessRuleError) as exc:
        reject_expense(session, expense_id=expense.id, user=org.admin, reason="  ")
    assert exc.value.detail == "Motivo da rejeição é obrigatório"

    rejected = reject_expense(session, expense_id=expense.id, user=org.admin, reason="Duplicada")
    assert rejected.status == ExpenseStatus.REJECTED
    assert rejected.notes[-1].message == "Duplicada"

    with pytest.raises(BusinessRuleError):
        approve_expense(session, expense_id=expense.id, user=org.admin)
    with pytest.raises(BusinessRuleError):
        reimburse_expense(session, expense_id=expense.id, user=org.admin)


def test_adjust_records_old_and_new_amount(session, org):
    expense = _submitted(session, org, amount="100.00")

    adjusted = adjust_expense(
        session,
        expense_id=expense.id,
        user=org.manager,
        amount=Decimal("80.00"),
        reason="Valor excessivo",
    )
    assert adjusted.status == ExpenseStatus.ADJUSTED
    assert adjusted.amount_base == Decimal("80.00")
    assert adjusted.amount == Decimal("80.00")
    note = adjusted.notes[-1]
    assert note.action == NoteAction.ADJUSTED
    assert "100.00" in note.message
    assert "80.00" in note.message
    assert "Valor excessivo" in note.message

    assert reimburse_expense(session, expense_id=expense.id, user=org.admin).status == (
        ExpenseStatus.REIMBURSED
    )


def test_adjust_keeps_foreign_original_amount(session, org):
    expense = _submitted(session, org, currency="EUR", amount="60.00")
    adjusted = adjust_expense(
        session, expense_id=expense.id, user=org.admin, amount=Decimal("8.00"), reason="Teto"
    )
    assert adjusted.amount == Decimal("60.00")
    assert adjusted.amount_base == Decimal("8.00")


def test_adjust_requires_reason_and_positive_amount(session, org):
    expense = _submitted(session, org)
    with pytest.raises(BusinessRuleError) as exc:
        adjust_expense(
            session, expense_id=expense.id, user=org.admin, amount=Decimal("5"), reason=""
        )
    assert exc.value.detail == "Motivo do ajuste é obrigatório"
    with pytest.raises(BusinessRuleError):
        adjust_expense(
            session, expense_id=expense.id, user=org.admin, amount=Decimal("0"), reason="x"
        )


def test_collaborator_cannot_decide_or_reimburse(session, org):
    expense = _submitted(session, org)
    with pytest.raises(ForbiddenError):
        approve_expense(session, expense_id=expense.id, user=org.collaborator)
    approve_expense(session, expense_id=expense.id, user=org.admin)
    with pytest.raises(ForbiddenError):
        reimburse_expense(session, expense_id=expense.id, user=org.manager)


def test_collaborator_cannot_touch_someone_elses_draft(session, org):
    expense = _draft(session, org, user=org.colleague)

    with pytest.raises(BusinessRuleError) as exc:
        update_expense(
            session, expense_id=expense.id, user=org.collaborator, changes={"vendor": "X"}
        )
    assert exc.value.detail == "Você só pode editar suas próprias despesas"
    with pytest.raises(BusinessRuleError):
        submit_expense(session, expense_id=expense.id, user=org.collaborator)
    with pytest.raises(BusinessRuleError):
        remove_expense(session, expense_id=expense.id, user=org.collaborator)

    # reads stay masked
    with pytest.raises(NotFoundError):
        get_expense_for_user(session, expense_id=expense.id, user=org.collaborator)

    session.refresh(expense)
    assert expense.status == ExpenseStatus.DRAFT
    assert expense.vendor is None


def test_manager_can_edit_draft_in_assigned_cost_center(session, org):
    expense = _draft(session, org)
    updated = update_expense(
        session, expense_id=expense.id, user=org.manager, changes={"vendor": "Padaria"}
    )
    assert updated.vendor == "Padaria"


def test_cross_tenant_access_is_masked(session, org, other_org):
    expense = _draft(session, org)
    for user in (other_org.admin, other_org.manager, other_org.collaborator):
        with pytest.raises(NotFoundError) as exc:
            get_expense_for_user(session, expense_id=expense.id, user=user)
        assert exc.value.detail == "Despesa não encontrada"
    with pytest.raises(NotFoundError):
        remove_expense(session, expense_id=expense.id, user=other_org.admin)


def test_only_drafts_are_editable_except_for_admin(session, org):
    expense = _submitted(session, org)
    with pytest.raises(BusinessRuleError) as exc:
        update_expense(
            session, expense_id=expense.id, user=org.collaborator, changes={"vendor": "X"}
        )
    assert exc.value.detail == "Apenas despesas em rascunho podem ser editadas"
    with pytest.raises(BusinessRuleError):
        remove_expense(session, expense_id=expense.id, user=org.collaborator)

    updated = update_expense(
        session, expense_id=expense.id, user=org.admin, changes={"vendor": "Correção"}
    )
    assert updated.vendor == "Correção"
    assert updated.status == ExpenseStatus.SUBMITTED


def test_update_recomputes_base_amount_and_policy(session, org):
    expense = _draft(session, org, category=ExpenseCategory.FOOD, amount="30.00", has_receipt=False)
    assert expense.policy_check["valid"] is True

    updated = update_expense(
        session,
        expense_id=expense.id,
        user=org.collaborator,
        changes={"amount": Decimal("330.00"), "currency": "USD"},
    )
    assert updated.amount_base == Decimal("60.00")
    assert updated.policy_check["receipt_missing"] is True
    assert updated.policy_check["valid"] is False


def test_remove_draft(session, org):
    expense = _draft(session, org)
    remove_expense(session, expense_id=expense.id, user=org.collaborator)
    with pytest.raises(NotFoundError):
        get_expense_for_user(session, expense_id=expense.id, user=org.admin)


def test_comment_appends_note(session, org):
    expense = _draft(session, org)
    commented = comment_expense(
        session, expense_id=expense.id, user=org.manager, message="Anexe a nota fiscal"
    )
    assert commented.notes[-1].action == NoteAction.COMMENT
    assert commented.notes[-1].actor_user_id == org.manager.id


def test_list_is_scoped_filtered_and_paginated(session, org):
    for day in range(1, 6):
        _draft(session, org, expense_date=date(2026, 5, day))
    _draft(session, org, user=org.colleague, cost_center=org.ops)
    _submitted(session, org, user=org.colleague)

    items, total = list_expenses_for_user(session, user=org.collaborator, page=2, limit=2)
    assert total == 5
    assert len(items) == 2
    assert [e.expense_date for e in items] == [date(2026, 5, 3), date(2026, 5, 2)]

    # manager sees own records plus the assigned cost center (sales) only
    _, manager_total = list_expenses_for_user(session, user=org.manager)
    assert manager_total == 6

    _, admin_total = list_expenses_for_user(session, user=org.admin)
    assert admin_total == 7

    submitted, submitted_total = list_expenses_for_user(
        session, user=org.admin, status=ExpenseStatus.SUBMITTED
    )
    assert submitted_total == 1
    assert submitted[0].user_id == org.colleague.id

    _, may_total = list_expenses_for_user(
        session, user=org.admin, date_from=date(2026, 5, 2), date_to=date(2026, 5, 4)
    )
    assert may_total == 3


def test_manager_decides_only_inside_assigned_cost_centers(session, org):
    outside = _submitted(session, org, cost_center=org.ops)
    with pytest.raises(NotFoundError):
        approve_expense(session, expense_id=outside.id, user=org.manager)

    inside = _submitted(session, org, cost_center=org.sales)
    assert approve_expense(session, expense_id=inside.id, user=org.manager).status == (
        ExpenseStatus.APPROVED
    )
    # admins are not limited by cost center
    assert approve_expense(session, expense_id=outside.id, user=org.admin).status == (
        ExpenseStatus.APPROVED
    )


def test_sub_cent_amounts_are_rounded_before_the_positive_check(session, org):
    with pytest.raises(BusinessRuleError) as exc:
        _draft(session, org, amount="0.004")
    assert exc.value.detail == "Valor deve ser maior que zero"

    expense = _draft(session, org, amount="10.005")
    assert expense.amount == Decimal("10.01")
    assert expense.amount_base == Decimal("10.01")

    with pytest.raises(BusinessRuleError):
        update_expense(
            session,
            expense_id=expense.id,
            user=org.collaborator,
            changes={"amount": Decimal("0.001")},
        )

    submitted = submit_expense(session, expense_id=expense.id, user=org.collaborator)
    with pytest.raises(BusinessRuleError):
        adjust_expense(
            session, expense_id=submitted.id, user=org.admin, amount=Decimal("0.004"), reason="x"
        )
    adjusted = adjust_expense(
        session, expense_id=submitted.id, user=org.admin, amount=Decimal("8.004"), reason="Teto"
    )
    assert adjusted.amount_base == Decimal("8.00")


def test_policy_verdict_agrees_with_stored_cents(session, org):
    expense = _draft(
        session, org, amount="49.999", category=ExpenseCategory.FOOD, has_receipt=False
    )

    assert expense.amount_base == Decimal("50.00")
    assert expense.policy_check["receipt_required"] is True
    assert expense.policy_check["receipt_missing"] is True
    assert expense.policy_check["valid"] is False
