from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tripspend.core.currencies import format_money, quantize_money
from tripspend.core.errors import BusinessRuleError, NotFoundError
from tripspend.core.logging import get_logger, log_event
from tripspend.modules.expenses.models import Expense, ExpenseCategory, ExpenseStatus
from tripspend.modules.policy.models import Policy

logger = get_logger(__name__)

# statuses that count towards what a user already spent on a given day
DAILY_COMMITTED_STATUSES = (
    ExpenseStatus.SUBMITTED,
    ExpenseStatus.APPROVED,
    ExpenseStatus.ADJUSTED,
)


@dataclass(frozen=True)
class PolicyVerdict:
    receipt_required: bool = False
    receipt_missing: bool = False
    exceeds_daily_limit: bool = False
    daily_limit: Decimal | None = None
    daily_spent: Decimal | None = None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_json(self) -> dict:
        data = asdict(self)
        data["valid"] = self.valid
        for key in ("daily_limit", "daily_spent"):
            if data[key] is not None:
                data[key] = format_money(data[key])
        return data

    @classmethod
    def from_json(cls, data: dict | None) -> PolicyVerdict:
        data = data or {}

        def _money(key: str) -> Decimal | None:
            raw = data.get(key)
            return Decimal(str(raw)) if raw is not None else None

        return cls(
            receipt_required=bool(data.get("receipt_required")),
            receipt_missing=bool(data.get("receipt_missing")),
            exceeds_daily_limit=bool(data.get("exceeds_daily_limit")),
            daily_limit=_money("daily_limit"),
            daily_spent=_money("daily_spent"),
            warnings=list(data.get("warnings") or []),
            errors=list(data.get("errors") or []),
        )


def find_active_policy(
    session: Session, *, tenant_id: uuid.UUID, category: ExpenseCategory
) -> Policy | None:
    return session.scalar(
        select(Policy)
        .where(
            Policy.tenant_id == tenant_id,
            Policy.category == category,
            Policy.active.is_(True),
        )
        .order_by(Policy.created_at.desc())
        .limit(1)
    )


def daily_spent(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    category: ExpenseCategory,
    expense_date: date,
    exclude_expense_id: uuid.UUID | None = None,
) -> Decimal:
    q = select(func.coalesce(func.sum(Expense.amount_base), 0)).where(
        Expense.tenant_id == tenant_id,
        Expense.user_id == user_id,
        Expense.category == category,
        Expense.expense_date == expense_date,
        Expense.status.in_(DAILY_COMMITTED_STATUSES),
    )
    if exclude_expense_id is not None:
        q = q.where(Expense.id != exclude_expense_id)
    return quantize_money(Decimal(str(session.scalar(q) or 0)))


def evaluate_policy(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    category: ExpenseCategory,
    expense_date: date,
    user_id: uuid.UUID,
    amount_base: Decimal,
    has_receipt: bool,
    exclude_expense_id: uuid.UUID | None = None,
) -> PolicyVerdict:
    policy = find_active_policy(session, tenant_id=tenant_id, category=category)
    if not policy:
        return PolicyVerdict()
    amount_base = quantize_money(amount_base)

    warnings: list[str] = []
    errors: list[str] = []
    receipt_required = False
    receipt_missing = False

    if policy.receipt_required_over is not None and amount_base >= policy.receipt_required_over:
        receipt_required = True
        if not has_receipt:
            receipt_missing = True
            errors.append(
                "Recibo obrigatório para valores acima de "
                f"R$ {format_money(policy.receipt_required_over)}"
            )

    exceeds = False
    spent: Decimal | None = None
    if policy.daily_limit is not None:
        spent = daily_spent(
            session,
            tenant_id=tenant_id,
            user_id=user_id,
            category=category,
            expense_date=expense_date,
            exclude_expense_id=exclude_expense_id,
        ) + quantize_money(amount_base)
        if spent > policy.daily_limit:
            exceeds = True
            warnings.append(
                f"Limite diário excedido (R$ {format_money(policy.daily_limit)} - "
                f"gasto hoje: R$ {format_money(spent)})"
            )

    return PolicyVerdict(
        receipt_required=receipt_required,
        receipt_missing=receipt_missing,
        exceeds_daily_limit=exceeds,
        daily_limit=policy.daily_limit,
        daily_spent=spent,
        warnings=warnings,
        errors=errors,
    )


def evaluate_expense(session: Session, *, expense: Expense) -> PolicyVerdict:
    """Re-run the policy for a loaded expense and store the verdict on it (no commit)."""
    verdict = evaluate_policy(
        session,
        tenant_id=expense.tenant_id,
        category=expense.category,
        expense_date=expense.expense_date,
        user_id=expense.user_id,
        amount_base=expense.amount_base,
        has_receipt=expense.has_receipt,
        exclude_expense_id=expense.id,
    )
    expense.policy_check = verdict.to_json()
    return verdict


def _validate_limits(values: dict) -> None:
    for key in ("receipt_required_over", "daily_limit", "km_rate", "per_diem_amount"):
        value = values.get(key)
        if value is not None and value < 0:
            raise BusinessRuleError("Valores da política não podem ser negativos")


def list_policies(session: Session, *, tenant_id: uuid.UUID) -> list[Policy]:
    return list(
        session.scalars(
            select(Policy)
            .where(Policy.tenant_id == tenant_id, Policy.active.is_(True))
            .order_by(Policy.category.asc())
        )
    )


def get_policy(session: Session, *, tenant_id: uuid.UUID, policy_id: uuid.UUID) -> Policy:
    policy = session.scalar(
        select(Policy).where(Policy.id == policy_id, Policy.tenant_id == tenant_id)
    )
    if not policy:
        raise NotFoundError("Política não encontrada")
    return policy


def create_policy(
    session: Session,
    *,
    tenant_id: uuid.UUID,
    category: ExpenseCategory,
    receipt_required_over: Decimal | None = None,
    daily_limit: Decimal | None = None,
    km_rate: Decimal | None = None,
    per_diem_amount: Decimal | None = None,
    notes: str | None = None,
) -> Policy:
    _validate_limits(
        {
            "receipt_required_over": receipt_required_over,
            "daily_limit": daily_limit,
            "km_rate": km_rate,
            "per_diem_amount": per_diem_amount,
        }
    )
    if find_active_policy(session, tenant_id=tenant_id, category=category):
        raise BusinessRuleError("Já existe uma política ativa para esta categoria")

    policy = Policy(
        tenant_id=tenant_id,
        category=category,
        receipt_required_over=receipt_required_over,
        daily_limit=daily_limit,
        km_rate=km_rate,
        per_diem_amount=per_diem_amount,
        notes=notes,
        active=True,
    )
    session.add(policy)
    session.commit()
    session.refresh(policy)
    log_event(logger, "policy.created", policy_id=str(policy.id), category=category.value)
    return policy


def update_policy(
    session: Session, *, tenant_id: uuid.UUID, policy_id: uuid.UUID, changes: dict
) -> Policy:
    policy = get_policy(session, tenant_id=tenant_id, policy_id=policy_id)
    _validate_limits(changes)
    for key in ("receipt_required_over", "daily_limit", "km_rate", "per_diem_amount", "notes"):
        if key in changes:
            setattr(policy, key, changes[key])
    session.add(policy)
    session.commit()
    session.refresh(policy)
    log_event(logger, "policy.updated", policy_id=str(policy.id))
    return policy


def deactivate_policy(session: Session, *, tenant_id: uuid.UUID, policy_id: uuid.UUID) -> None:
    policy = get_policy(session, tenant_id=tenant_id, policy_id=policy_id)
    policy.active = False
    session.add(policy)
    session.commit()
    log_event(logger, "policy.deactivated", policy_id=str(policy.id))
