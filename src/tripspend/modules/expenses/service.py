from __future__ import annotations

import math
import uuid
from datetime import date
from decimal import Decimal
from pathlib import PurePath

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tripspend.core.config import settings
from tripspend.core.currencies import format_money, normalize_currency, quantize_money
from tripspend.core.errors import BusinessRuleError, ForbiddenError, NotFoundError
from tripspend.core.logging import get_logger, log_event, log_exception
from tripspend.core.storage import StorageError, get_storage, receipt_key
from tripspend.core.timeutil import utcnow
from tripspend.modules.expenses.models import (
    Expense,
    ExpenseCategory,
    ExpenseFile,
    ExpenseStatus,
)
from tripspend.modules.fx.service import convert_to_base
from tripspend.modules.identity.access import access_scope_for
from tripspend.modules.identity.models import User, UserRole
from tripspend.modules.org.service import require_active_cost_center, require_active_project
from tripspend.modules.policy.service import evaluate_expense, evaluate_policy
from tripspend.modules.trips.models import Trip
from tripspend.modules.workflow.models import NoteAction
from tripspend.modules.workflow.service import append_expense_note

logger = get_logger(__name__)

ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
        "text/plain",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    }
)

DECIDERS = frozenset({UserRole.MANAGER, UserRole.ADMIN})

# fields whose change requires a fresh policy verdict
_POLICY_FIELDS = frozenset({"amount", "currency", "category", "expense_date", "has_receipt"})
_REQUIRED_FIELDS = frozenset(
    {"amount", "currency", "category", "expense_date", "cost_center_id", "has_receipt"}
)


def _require_currency(value: str | None) -> str:
    code = normalize_currency(value or settings.base_currency)
    if not code:
        raise BusinessRuleError("Moeda inválida")
    return code


def _require_positive(amount: Decimal | None) -> Decimal:
    """Money is stored in cents; sub-cent input is rounded before the sign check."""
    if amount is None or quantize_money(amount) <= 0:
        raise BusinessRuleError("Valor deve ser maior que zero")
    return quantize_money(amount)


def _require_trip(session: Session, *, tenant_id: uuid.UUID, trip_id: uuid.UUID) -> Trip:
    trip = session.scalar(select(Trip).where(Trip.id == trip_id, Trip.tenant_id == tenant_id))
    if not trip:
        raise NotFoundError("Viagem não encontrada")
    return trip


def _get_owned_expense(
    session: Session, *, expense_id: uuid.UUID, user: User, message: str
) -> Expense:
    """Load an expense the caller wants to change.

    Collaborators get a business-rule error on a colleague's expense instead of the
    masked 404 that reads get; managers stay limited to their scope.
    """
    expense = session.scalar(
        select(Expense).where(Expense.id == expense_id, Expense.tenant_id == user.tenant_id)
    )
    if not expense:
        raise NotFoundError("Despesa não encontrada")
    if user.role == UserRole.COLLABORATOR:
        if expense.user_id != user.id:
            raise BusinessRuleError(message)
        return expense
    return get_expense_for_user(session, expense_id=expense_id, user=user)


def _require_decider(user: User) -> None:
    if user.role not in DECIDERS:
        raise ForbiddenError()


def create_expense(
    session: Session,
    *,
    user: User,
    category: ExpenseCategory,
    expense_date: date,
    amount: Decimal,
    cost_center_id: uuid.UUID,
    currency: str | None = None,
    project_id: uuid.UUID | None = None,
    trip_id: uuid.UUID | None = None,
    vendor: str | None = None,
    description: str | None = None,
    km_driven: Decimal | None = None,
    has_receipt: bool = False,
) -> Expense:
    tenant_id = user.tenant_id
    amount = _require_positive(amount)
    code = _require_currency(currency)
    require_active_cost_center(session, tenant_id=tenant_id, cost_center_id=cost_center_id)
    if project_id:
        require_active_project(session, tenant_id=tenant_id, project_id=project_id)
    if trip_id:
        _require_trip(session, tenant_id=tenant_id, trip_id=trip_id)

    amount_base = convert_to_base(
        session, amount=amount, from_currency=code, tenant_id=tenant_id
    )
    verdict = evaluate_policy(
        session,
        tenant_id=tenant_id,
        category=category,
        expense_date=expense_date,
        user_id=user.id,
        amount_base=amount_base,
        has_receipt=has_receipt,
    )

    expense = Expense(
        tenant_id=tenant_id,
        user_id=user.id,
        cost_center_id=cost_center_id,
        project_id=project_id,
        trip_id=trip_id,
        category=category,
        expense_date=expense_date,
        currency=code,
        amount=amount,
        amount_base=amount_base,
        has_receipt=has_receipt,
        vendor=vendor,
        description=description,
        km_driven=km_driven,
        status=ExpenseStatus.DRAFT,
        policy_check=verdict.to_json(),
    )
    session.add(expense)
    session.flush()
    append_expense_note(
        session, expense_id=expense.id, actor_user_id=user.id, action=NoteAction.CREATED
    )
    session.commit()
    session.refresh(expense)
    log_event(
        logger,
        "expense.created",
        expense_id=str(expense.id),
        category=category.value,
        currency=code,
        policy_valid=verdict.valid,
    )
    return expense


def list_expenses_for_user(
    session: Session,
    *,
    user: User,
    status: ExpenseStatus | None = None,
    category: ExpenseCategory | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    trip_id: uuid.UUID | None = None,
    cost_center_id: uuid.UUID | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Expense], int]:
    """Return one page of the expenses visible to ``user`` plus the total match count."""
    scope = access_scope_for(session, user=user)
    q = scope.apply(
        select(Expense),
        tenant_column=Expense.tenant_id,
        owner_column=Expense.user_id,
        cost_center_column=Expense.cost_center_id,
    )
    if status is not None:
        q = q.where(Expense.status == status)
    if category is not None:
        q = q.where(Expense.category == category)
    if date_from is not None:
        q = q.where(Expense.expense_date >= date_from)
    if date_to is not None:
        q = q.where(Expense.expense_date <= date_to)
    if trip_id is not None:
        q = q.where(Expense.trip_id == trip_id)
    if cost_center_id is not None:
        q = q.where(Expense.cost_center_id == cost_center_id)

    total = session.scalar(select(func.count()).select_from(q.subquery())) or 0
    page = max(page, 1)
    limit = max(1, min(limit, 100))
    items = session.scalars(
        q.order_by(Expense.expense_date.desc(), Expense.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(items), int(total)


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def get_expense_for_user(session: Session, *, expense_id: uuid.UUID, user: User) -> Expense:
    expense = session.scalar(select(Expense).where(Expense.id == expense_id))
    scope = access_scope_for(session, user=user)
    if not expense or not scope.allows(
        tenant_id=expense.tenant_id,
        owner_id=expense.user_id,
        cost_center_id=expense.cost_center_id,
    ):
        raise NotFoundError("Despesa não encontrada")
    return expense


def update_expense(
    session: Session, *, expense_id: uuid.UUID, user: User, changes: dict
) -> Expense:
    expense = _get_owned_expense(
        session,
        expense_id=expense_id,
        user=user,
        message="Você só pode editar suas próprias despesas",
    )
    if expense.status != ExpenseStatus.DRAFT and user.role != UserRole.ADMIN:
        raise BusinessRuleError("Apenas despesas em rascunho podem ser editadas")

    tenant_id = expense.tenant_id
    changes = {
        k: v
        for k, v in changes.items()
        if k != "status" and not (v is None and k in _REQUIRED_FIELDS)
    }
    if "amount" in changes:
        changes["amount"] = _require_positive(changes["amount"])
    if "currency" in changes:
        changes["currency"] = _require_currency(changes["currency"])
    if changes.get("cost_center_id"):
        require_active_cost_center(
            session, tenant_id=tenant_id, cost_center_id=changes["cost_center_id"]
        )
    if changes.get("project_id"):
        require_active_project(session, tenant_id=tenant_id, project_id=changes["project_id"])
    if changes.get("trip_id"):
        _require_trip(session, tenant_id=tenant_id, trip_id=changes["trip_id"])

    touched = {
        key for key, value in changes.items() if getattr(expense, key, None) != value
    }
    for key in touched:
        setattr(expense, key, changes[key])

    if touched & {"amount", "currency"}:
        expense.amount_base = convert_to_base(
            session,
            amount=expense.amount,
            from_currency=expense.currency,
            tenant_id=tenant_id,
        )
    if touched & _POLICY_FIELDS:
        evaluate_expense(session, expense=expense)

    session.add(expense)
    session.commit()
    session.refresh(expense)
    log_event(logger, "expense.updated", expense_id=str(expense.id), fields=sorted(touched))
    return expense


def _delete_objects_best_effort(keys: list[str], *, expense_id: uuid.UUID) -> None:
    storage = get_storage()
    for key in keys:
        try:
            storage.delete(key=key)
        except Exception:  # noqa: BLE001
            log_exception(
                logger,
                "expense.file.delete_failure",
                expense_id=str(expense_id),
                storage_key=key,
            )


def remove_expense(session: Session, *, expense_id: uuid.UUID, user: User) -> None:
    expense = _get_owned_expense(
        session,
        expense_id=expense_id,
        user=user,
        message="Você só pode excluir suas próprias despesas",
    )
    if expense.status != ExpenseStatus.DRAFT and user.role != UserRole.ADMIN:
        raise BusinessRuleError("Apenas despesas em rascunho podem ser excluídas")

    keys = [f.storage_key for f in expense.files]
    _delete_objects_best_effort(keys, expense_id=expense.id)
    session.delete(expense)
    session.commit()
    log_event(logger, "expense.removed", expense_id=str(expense_id), files=len(keys))


def submit_expense(session: Session, *, expense_id: uuid.UUID, user: User) -> Expense:
    expense = _get_owned_expense(
        session,
        expense_id=expense_id,
        user=user,
        message="Você só pode enviar suas próprias despesas",
    )
    if expense.status != ExpenseStatus.DRAFT:
        raise BusinessRuleError("Apenas despesas em rascunho podem ser enviadas")

    verdict = evaluate_expense(session, expense=expense)
    if not verdict.valid:
        session.rollback()
        raise BusinessRuleError(
            "Despesa não está em conformidade com a política: " + ", ".join(verdict.errors)
        )

    expense.status = ExpenseStatus.SUBMITTED
    expense.submitted_at = utcnow()
    session.add(expense)
    append_expense_note(
        session, expense_id=expense.id, actor_user_id=user.id, action=NoteAction.SUBMITTED
    )
    session.commit()
    session.refresh(expense)
    log_event(logger, "expense.submitted", expense_id=str(expense.id))
    return expense


def approve_expense(
    session: Session, *, expense_id: uuid.UUID, user: User, note: str | None = None
) -> Expense:
    _require_decider(user)
    expense = get_expense_for_user(session, expense_id=expense_id, user=user)
    if expense.status != ExpenseStatus.SUBMITTED:
        raise BusinessRuleError("Apenas despesas enviadas podem ser aprovadas")

    expense.status = ExpenseStatus.APPROVED
    expense.decided_at = utcnow()
    session.add(expense)
    append_expense_note(
        session,
        expense_id=expense.id,
        actor_user_id=user.id,
        action=NoteAction.APPROVED,
        message=(note or "").strip(),
    )
    session.commit()
    session.refresh(expense)
    log_event(logger, "expense.approved", expense_id=str(expense.id))
    return expense


def reject_expense(
    session: Session, *, expense_id: uuid.UUID, user: User, reason: str
) -> Expense:
    _require_decider(user)
    expense = get_expense_for_user(session, expense_id=expense_id, user=user)
    if expense.status != ExpenseStatus.SUBMITTED:
        raise BusinessRuleError("Apenas despesas enviadas podem ser rejeitadas")
    reason = (reason or "").strip()
    if not reason:
        raise BusinessRuleError("Motivo da rejeição é obrigatório")

    expense.status = ExpenseStatus.REJECTED
    expense.decided_at = utcnow()
    session.add(expense)
    append_expense_note(
        session,
        expense_id=expense.id,
        actor_user_id=user.id,
        action=NoteAction.REJECTED,
        message=reason,
    )
    session.commit()
    session.refresh(expense)
    log_event(logger, "expense.rejected", expense_id=str(expense.id))
    return expense


def adjust_expense(
    session: Session, *, expense_id: uuid.UUID, user: User, amount: Decimal, reason: str
) -> Expense:
    """Override the approved base amount.

    The original ``amount`` is only rewritten when the expense was booked in the base
    currency; foreign amounts keep what the receipt says.
    """
    _require_decider(user)
    expense = get_expense_for_user(session, expense_id=expense_id, user=user)
    if expense.status != ExpenseStatus.SUBMITTED:
        raise BusinessRuleError("Apenas despesas enviadas podem ser ajustadas")
    reason = (reason or "").strip()
    if not reason:
        raise BusinessRuleError("Motivo do ajuste é obrigatório")
    amount = _require_positive(amount)

    previous = expense.amount_base
    expense.amount_base = amount
    if expense.currency == settings.base_currency:
        expense.amount = amount
    expense.status = ExpenseStatus.ADJUSTED
    expense.decided_at = utcnow()
    session.add(expense)
    append_expense_note(
        session,
        expense_id=expense.id,
        actor_user_id=user.id,
        action=NoteAction.ADJUSTED,
        message=(
            f"Valor alterado de R$ {format_money(previous)} para "
            f"R$ {format_money(amount)}. Motivo: {reason}"
        ),
    )
    session.commit()
    session.refresh(expense)
    log_event(
        logger,
        "expense.adjusted",
        expense_id=str(expense.id),
        previous_amount=format_money(previous),
        amount=format_money(amount),
    )
    return expense


def reimburse_expense(session: Session, *, expense_id: uuid.UUID, user: User) -> Expense:
    if user.role != UserRole.ADMIN:
        raise ForbiddenError()
    expense = get_expense_for_user(session, expense_id=expense_id, user=user)
    if expense.status not in {ExpenseStatus.APPROVED, ExpenseStatus.ADJUSTED}:
        raise BusinessRuleError("Apenas despesas aprovadas ou ajustadas podem ser reembolsadas")

    expense.status = ExpenseStatus.REIMBURSED
    expense.reimbursed_at = utcnow()
    session.add(expense)
    append_expense_note(
        session, expense_id=expense.id, actor_user_id=user.id, action=NoteAction.REIMBURSED
    )
    session.commit()
    session.refresh(expense)
    log_event(logger, "expense.reimbursed", expense_id=str(expense.id))
    return expense


def comment_expense(
    session: Session, *, expense_id: uuid.UUID, user: User, message: str
) -> Expense:
    expense = get_expense_for_user(session, expense_id=expense_id, user=user)
    message = (message or "").strip()
    if not message:
        raise BusinessRuleError("Comentário é obrigatório")
    append_expense_note(
        session,
        expense_id=expense.id,
        actor_user_id=user.id,
        action=NoteAction.COMMENT,
        message=message,
    )
    session.commit()
    session.refresh(expense)
    return expense


def upload_expense_file(
    session: Session,
    *,
    expense_id: uuid.UUID,
    user: User,
    filename: str,
    content_type: str | None,
    body: bytes,
) -> ExpenseFile:
    expense = _get_owned_expense(
        session,
        expense_id=expense_id,
        user=user,
        message="Você só pode anexar arquivos às suas próprias despesas",
    )

    mime_type = (content_type or "").split(";")[0].strip().lower()
    if mime_type not in ALLOWED_MIME_TYPES:
        raise BusinessRuleError("Tipo de arquivo não permitido")
    if not body:
        raise BusinessRuleError("Arquivo vazio")
    if len(body) > settings.max_upload_bytes:
        max_mb = settings.max_upload_bytes // (1024 * 1024)
        raise BusinessRuleError(f"Arquivo excede o tamanho máximo de {max_mb} MB")

    filename = PurePath(filename or "arquivo").name
    storage = get_storage()
    stored = storage.put(
        key=receipt_key(expense.tenant_id, filename), body=body, content_type=mime_type
    )
    try:
        row = ExpenseFile(
            expense_id=expense.id,
            filename=filename,
            url=storage.url_for(key=stored.key),
            storage_key=stored.key,
            mime_type=mime_type,
            size=stored.byte_size,
        )
        session.add(row)
        expense.has_receipt = True
        evaluate_expense(session, expense=expense)
        session.add(expense)
        session.commit()
    except Exception:
        # no row will point at the object written above
        session.rollback()
        _delete_objects_best_effort([stored.key], expense_id=expense_id)
        raise
    session.refresh(row)
    log_event(
        logger,
        "expense.file.uploaded",
        expense_id=str(expense.id),
        file_id=str(row.id),
        mime_type=mime_type,
        byte_size=stored.byte_size,
    )
    return row


def delete_expense_file(
    session: Session, *, expense_id: uuid.UUID, file_id: uuid.UUID, user: User
) -> Expense:
    expense = _get_owned_expense(
        session,
        expense_id=expense_id,
        user=user,
        message="Você só pode remover arquivos das suas próprias despesas",
    )
    row = session.scalar(
        select(ExpenseFile).where(ExpenseFile.id == file_id, ExpenseFile.expense_id == expense.id)
    )
    if not row:
        raise NotFoundError("Arquivo não encontrado")

    _delete_objects_best_effort([row.storage_key], expense_id=expense.id)
    expense.files.remove(row)
    expense.has_receipt = bool(expense.files)
    evaluate_expense(session, expense=expense)
    session.add(expense)
    session.commit()
    session.refresh(expense)
    log_event(logger, "expense.file.deleted", expense_id=str(expense.id), file_id=str(file_id))
    return expense


def read_expense_file(
    session: Session, *, storage_key: str, user: User
) -> tuple[ExpenseFile, bytes]:
    row = session.scalar(select(ExpenseFile).where(ExpenseFile.storage_key == storage_key))
    if not row:
        raise NotFoundError("Arquivo não encontrado")
    get_expense_for_user(session, expense_id=row.expense_id, user=user)
    try:
        body = get_storage().get(key=row.storage_key)
    except StorageError as e:
        raise NotFoundError("Arquivo não encontrado") from e
    return row, body
