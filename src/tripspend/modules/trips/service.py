from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from tripspend.core.currencies import quantize_money
from tripspend.core.errors import BusinessRuleError, ForbiddenError, NotFoundError
from tripspend.core.logging import get_logger, log_event
from tripspend.core.timeutil import ensure_aware, utcnow
from tripspend.modules.expenses.models import Expense
from tripspend.modules.identity.access import access_scope_for
from tripspend.modules.identity.models import User, UserRole
from tripspend.modules.org.service import require_active_cost_center, require_active_project
from tripspend.modules.trips.models import Trip, TripStatus
from tripspend.modules.workflow.models import NoteAction
from tripspend.modules.workflow.service import append_trip_note

logger = get_logger(__name__)

DECIDERS = frozenset({UserRole.MANAGER, UserRole.ADMIN})


@dataclass(frozen=True)
class TripSummary:
    trip_id: uuid.UUID
    expense_count: int
    total_base: Decimal
    by_category: dict[str, Decimal]


def _validate_dates(start_at: datetime, end_at: datetime, *, require_future: bool) -> None:
    start_at = ensure_aware(start_at)
    end_at = ensure_aware(end_at)
    if start_at >= end_at:
        raise BusinessRuleError("Data de início deve ser anterior à data de fim")
    if require_future and start_at <= utcnow():
        raise BusinessRuleError("Data de início deve ser futura")


def _get_owned_trip(
    session: Session, *, trip_id: uuid.UUID, user: User, message: str
) -> Trip:
    trip = session.scalar(
        select(Trip).where(Trip.id == trip_id, Trip.tenant_id == user.tenant_id)
    )
    if not trip:
        raise NotFoundError("Viagem não encontrada")
    if user.role == UserRole.COLLABORATOR:
        if trip.requester_id != user.id:
            raise BusinessRuleError(message)
        return trip
    return get_trip_for_user(session, trip_id=trip_id, user=user)


def _require_decider(user: User) -> None:
    if user.role not in DECIDERS:
        raise ForbiddenError()


def create_trip(
    session: Session,
    *,
    user: User,
    origin: str,
    destination: str,
    start_at: datetime,
    end_at: datetime,
    purpose: str,
    cost_center_id: uuid.UUID,
    project_id: uuid.UUID | None = None,
) -> Trip:
    _validate_dates(start_at, end_at, require_future=True)
    require_active_cost_center(session, tenant_id=user.tenant_id, cost_center_id=cost_center_id)
    if project_id:
        require_active_project(session, tenant_id=user.tenant_id, project_id=project_id)

    trip = Trip(
        tenant_id=user.tenant_id,
        requester_id=user.id,
        cost_center_id=cost_center_id,
        project_id=project_id,
        origin=origin.strip(),
        destination=destination.strip(),
        start_at=start_at,
        end_at=end_at,
        purpose=purpose.strip(),
        status=TripStatus.DRAFT,
    )
    session.add(trip)
    session.flush()
    append_trip_note(session, trip_id=trip.id, actor_user_id=user.id, action=NoteAction.CREATED)
    session.commit()
    session.refresh(trip)
    log_event(logger, "trip.created", trip_id=str(trip.id))
    return trip


def list_trips_for_user(
    session: Session,
    *,
    user: User,
    status: TripStatus | None = None,
    cost_center_id: uuid.UUID | None = None,
) -> list[Trip]:
    scope = access_scope_for(session, user=user)
    q = scope.apply(
        select(Trip),
        tenant_column=Trip.tenant_id,
        owner_column=Trip.requester_id,
        cost_center_column=Trip.cost_center_id,
    )
    if status is not None:
        q = q.where(Trip.status == status)
    if cost_center_id is not None:
        q = q.where(Trip.cost_center_id == cost_center_id)
    return list(session.scalars(q.order_by(Trip.start_at.desc())))


def get_trip_for_user(session: Session, *, trip_id: uuid.UUID, user: User) -> Trip:
    trip = session.scalar(select(Trip).where(Trip.id == trip_id))
    scope = access_scope_for(session, user=user)
    if not trip or not scope.allows(
        tenant_id=trip.tenant_id, owner_id=trip.requester_id, cost_center_id=trip.cost_center_id
    ):
        raise NotFoundError("Viagem não encontrada")
    return trip


def update_trip(session: Session, *, trip_id: uuid.UUID, user: User, changes: dict) -> Trip:
    trip = _get_owned_trip(
        session, trip_id=trip_id, user=user, message="Você só pode editar suas próprias viagens"
    )
    if trip.status != TripStatus.DRAFT and user.role != UserRole.ADMIN:
        raise BusinessRuleError("Apenas viagens em rascunho podem ser editadas")

    start_at = changes.get("start_at") or trip.start_at
    end_at = changes.get("end_at") or trip.end_at
    if "start_at" in changes or "end_at" in changes:
        _validate_dates(start_at, end_at, require_future="start_at" in changes)
    if changes.get("cost_center_id"):
        require_active_cost_center(
            session, tenant_id=trip.tenant_id, cost_center_id=changes["cost_center_id"]
        )
    if changes.get("project_id"):
        require_active_project(session, tenant_id=trip.tenant_id, project_id=changes["project_id"])

    for key in ("origin", "destination", "purpose", "start_at", "end_at", "cost_center_id"):
        if changes.get(key) is not None:
            value = changes[key]
            setattr(trip, key, value.strip() if isinstance(value, str) else value)
    if "project_id" in changes:
        trip.project_id = changes["project_id"]

    session.add(trip)
    session.commit()
    session.refresh(trip)
    log_event(logger, "trip.updated", trip_id=str(trip.id))
    return trip


def remove_trip(session: Session, *, trip_id: uuid.UUID, user: User) -> None:
    trip = _get_owned_trip(
        session, trip_id=trip_id, user=user, message="Você só pode excluir suas próprias viagens"
    )
    if trip.status != TripStatus.DRAFT and user.role != UserRole.ADMIN:
        raise BusinessRuleError("Apenas viagens em rascunho podem ser excluídas")

    # expenses outlive the trip they were booked against
    session.execute(update(Expense).where(Expense.trip_id == trip.id).values(trip_id=None))
    session.delete(trip)
    session.commit()
    log_event(logger, "trip.removed", trip_id=str(trip_id))


def _transition(
    session: Session,
    trip: Trip,
    *,
    user: User,
    status: TripStatus,
    action: NoteAction,
    message: str = "",
    event: str,
) -> Trip:
    trip.status = status
    session.add(trip)
    append_trip_note(
        session, trip_id=trip.id, actor_user_id=user.id, action=action, message=message
    )
    session.commit()
    session.refresh(trip)
    log_event(logger, event, trip_id=str(trip.id), status=status.value)
    return trip


def submit_trip(session: Session, *, trip_id: uuid.UUID, user: User) -> Trip:
    trip = _get_owned_trip(
        session, trip_id=trip_id, user=user, message="Você só pode enviar suas próprias viagens"
    )
    if trip.status != TripStatus.DRAFT:
        raise BusinessRuleError("Apenas viagens em rascunho podem ser enviadas")
    return _transition(
        session,
        trip,
        user=user,
        status=TripStatus.PENDING_APPROVAL,
        action=NoteAction.SUBMITTED,
        event="trip.submitted",
    )


def approve_trip(
    session: Session, *, trip_id: uuid.UUID, user: User, note: str | None = None
) -> Trip:
    _require_decider(user)
    trip = get_trip_for_user(session, trip_id=trip_id, user=user)
    if trip.status != TripStatus.PENDING_APPROVAL:
        raise BusinessRuleError("Apenas viagens pendentes podem ser aprovadas")
    trip.manager_id = user.id
    return _transition(
        session,
        trip,
        user=user,
        status=TripStatus.APPROVED,
        action=NoteAction.APPROVED,
        message=(note or "").strip(),
        event="trip.approved",
    )


def reject_trip(session: Session, *, trip_id: uuid.UUID, user: User, reason: str) -> Trip:
    _require_decider(user)
    trip = get_trip_for_user(session, trip_id=trip_id, user=user)
    if trip.status != TripStatus.PENDING_APPROVAL:
        raise BusinessRuleError("Apenas viagens pendentes podem ser rejeitadas")
    reason = (reason or "").strip()
    if not reason:
        raise BusinessRuleError("Motivo da rejeição é obrigatório")
    trip.manager_id = user.id
    return _transition(
        session,
        trip,
        user=user,
        status=TripStatus.REJECTED,
        action=NoteAction.REJECTED,
        message=reason,
        event="trip.rejected",
    )


def start_trip(session: Session, *, trip_id: uuid.UUID, user: User) -> Trip:
    trip = _get_owned_trip(
        session, trip_id=trip_id, user=user, message="Você só pode iniciar suas próprias viagens"
    )
    if trip.status != TripStatus.APPROVED:
        raise BusinessRuleError("Apenas viagens aprovadas podem ser iniciadas")
    if utcnow() < ensure_aware(trip.start_at):
        raise BusinessRuleError("Viagem só pode ser iniciada na data prevista ou após")
    return _transition(
        session,
        trip,
        user=user,
        status=TripStatus.IN_PROGRESS,
        action=NoteAction.STARTED,
        event="trip.started",
    )


def complete_trip(session: Session, *, trip_id: uuid.UUID, user: User) -> Trip:
    trip = _get_owned_trip(
        session,
        trip_id=trip_id,
        user=user,
        message="Você só pode concluir suas próprias viagens",
    )
    if trip.status != TripStatus.IN_PROGRESS:
        raise BusinessRuleError("Apenas viagens em andamento podem ser concluídas")
    return _transition(
        session,
        trip,
        user=user,
        status=TripStatus.COMPLETED,
        action=NoteAction.COMPLETED,
        event="trip.completed",
    )


def archive_trip(session: Session, *, trip_id: uuid.UUID, user: User) -> Trip:
    _require_decider(user)
    trip = get_trip_for_user(session, trip_id=trip_id, user=user)
    if trip.status not in {TripStatus.COMPLETED, TripStatus.REJECTED}:
        raise BusinessRuleError("Apenas viagens concluídas ou rejeitadas podem ser arquivadas")
    return _transition(
        session,
        trip,
        user=user,
        status=TripStatus.ARCHIVED,
        action=NoteAction.ARCHIVED,
        event="trip.archived",
    )


def trip_summary(session: Session, *, trip_id: uuid.UUID, user: User) -> TripSummary:
    trip = get_trip_for_user(session, trip_id=trip_id, user=user)
    rows = session.execute(
        select(Expense.category, func.count(Expense.id), func.sum(Expense.amount_base))
        .where(Expense.trip_id == trip.id, Expense.tenant_id == trip.tenant_id)
        .group_by(Expense.category)
    ).all()

    by_category: dict[str, Decimal] = defaultdict(Decimal)
    count = 0
    for category, n, total in rows:
        by_category[category.value] += Decimal(str(total or 0))
        count += int(n)
    by_category = {k: quantize_money(v) for k, v in by_category.items()}
    return TripSummary(
        trip_id=trip.id,
        expense_count=count,
        total_base=quantize_money(sum(by_category.values(), Decimal("0"))),
        by_category=by_category,
    )
