from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tripspend.api.deps import get_current_user
from tripspend.core.db import db_session
from tripspend.modules.identity.models import User
from tripspend.modules.trips.models import TripStatus
from tripspend.modules.trips.schemas import (
    TripApprove,
    TripCreate,
    TripOut,
    TripReject,
    TripSummaryOut,
    TripUpdate,
)
from tripspend.modules.trips.service import (
    approve_trip,
    archive_trip,
    complete_trip,
    create_trip,
    get_trip_for_user,
    list_trips_for_user,
    reject_trip,
    remove_trip,
    start_trip,
    submit_trip,
    trip_summary,
    update_trip,
)

router = APIRouter(tags=["trips"])


def _out(trip) -> TripOut:
    return TripOut.model_validate(trip, from_attributes=True)


@router.post("/trips", response_model=TripOut)
def create_trip_endpoint(
    payload: TripCreate,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripOut:
    return _out(create_trip(session, user=user, **payload.model_dump()))


@router.get("/trips", response_model=list[TripOut])
def list_trips_endpoint(
    status: TripStatus | None = None,
    cost_center_id: uuid.UUID | None = None,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> list[TripOut]:
    trips = list_trips_for_user(session, user=user, status=status, cost_center_id=cost_center_id)
    return [_out(t) for t in trips]


@router.get("/trips/{trip_id}", response_model=TripOut)
def get_trip_endpoint(
    trip_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripOut:
    return _out(get_trip_for_user(session, trip_id=trip_id, user=user))


@router.patch("/trips/{trip_id}", response_model=TripOut)
def update_trip_endpoint(
    trip_id: uuid.UUID,
    payload: TripUpdate,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripOut:
    trip = update_trip(
        session, trip_id=trip_id, user=user, changes=payload.model_dump(exclude_unset=True)
    )
    return _out(trip)


@router.delete("/trips/{trip_id}", status_code=204)
def remove_trip_endpoint(
    trip_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> None:
    remove_trip(session, trip_id=trip_id, user=user)


@router.post("/trips/{trip_id}/submit", response_model=TripOut)
def submit_trip_endpoint(
    trip_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripOut:
    return _out(submit_trip(session, trip_id=trip_id, user=user))


@router.post("/trips/{trip_id}/approve", response_model=TripOut)
def approve_trip_endpoint(
    trip_id: uuid.UUID,
    payload: TripApprove | None = None,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripOut:
    note = payload.note if payload else None
    return _out(approve_trip(session, trip_id=trip_id, user=user, note=note))


@router.post("/trips/{trip_id}/reject", response_model=TripOut)
def reject_trip_endpoint(
    trip_id: uuid.UUID,
    payload: TripReject,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripOut:
    return _out(reject_trip(session, trip_id=trip_id, user=user, reason=payload.reason))


@router.post("/trips/{trip_id}/start", response_model=TripOut)
def start_trip_endpoint(
    trip_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripOut:
    return _out(start_trip(session, trip_id=trip_id, user=user))


@router.post("/trips/{trip_id}/complete", response_model=TripOut)
def complete_trip_endpoint(
    trip_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripOut:
    return _out(complete_trip(session, trip_id=trip_id, user=user))


@router.post("/trips/{trip_id}/archive", response_model=TripOut)
def archive_trip_endpoint(
    trip_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripOut:
    return _out(archive_trip(session, trip_id=trip_id, user=user))


@router.get("/trips/{trip_id}/summary", response_model=TripSummaryOut)
def trip_summary_endpoint(
    trip_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> TripSummaryOut:
    summary = trip_summary(session, trip_id=trip_id, user=user)
    return TripSummaryOut.model_validate(summary, from_attributes=True)
