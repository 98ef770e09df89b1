from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from tripspend.modules.workflow.models import ExpenseNote, NoteAction, TripNote


def append_expense_note(
    session: Session,
    *,
    expense_id: uuid.UUID,
    actor_user_id: uuid.UUID | None,
    action: NoteAction,
    message: str = "",
) -> ExpenseNote:
    note = ExpenseNote(
        expense_id=expense_id, actor_user_id=actor_user_id, action=action, message=message
    )
    session.add(note)
    return note


def append_trip_note(
    session: Session,
    *,
    trip_id: uuid.UUID,
    actor_user_id: uuid.UUID | None,
    action: NoteAction,
    message: str = "",
) -> TripNote:
    note = TripNote(trip_id=trip_id, actor_user_id=actor_user_id, action=action, message=message)
    session.add(note)
    return note
