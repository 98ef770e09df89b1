from __future__ import annotations

import uuid
from datetime import date
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from tripspend.api.deps import get_current_user
from tripspend.core.db import db_session
from tripspend.modules.expenses.models import ExpenseCategory, ExpenseStatus
from tripspend.modules.expenses.schemas import (
    ExpenseAdjust,
    ExpenseApprove,
    ExpenseCreate,
    ExpenseFileOut,
    ExpenseOut,
    ExpensePage,
    ExpenseReject,
    ExpenseUpdate,
    PageMeta,
)
from tripspend.modules.expenses.service import (
    adjust_expense,
    approve_expense,
    comment_expense,
    create_expense,
    delete_expense_file,
    get_expense_for_user,
    list_expenses_for_user,
    page_count,
    read_expense_file,
    reimburse_expense,
    reject_expense,
    remove_expense,
    submit_expense,
    update_expense,
    upload_expense_file,
)
from tripspend.modules.identity.models import User
from tripspend.modules.workflow.schemas import CommentIn

router = APIRouter(tags=["expenses"])


def _out(expense) -> ExpenseOut:
    return ExpenseOut.model_validate(expense, from_attributes=True)


@router.post("/expenses", response_model=ExpenseOut)
def create_expense_endpoint(
    payload: ExpenseCreate,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    expense = create_expense(session, user=user, **payload.model_dump())
    return _out(expense)


@router.get("/expenses", response_model=ExpensePage)
def list_expenses_endpoint(
    status: ExpenseStatus | None = None,
    category: ExpenseCategory | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    trip_id: uuid.UUID | None = None,
    cost_center_id: uuid.UUID | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpensePage:
    items, total = list_expenses_for_user(
        session,
        user=user,
        status=status,
        category=category,
        date_from=date_from,
        date_to=date_to,
        trip_id=trip_id,
        cost_center_id=cost_center_id,
        page=page,
        limit=limit,
    )
    return ExpensePage(
        items=[_out(e) for e in items],
        meta=PageMeta(page=page, limit=limit, total=total, pages=page_count(total, limit)),
    )


@router.get("/expenses/{expense_id}", response_model=ExpenseOut)
def get_expense_endpoint(
    expense_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    return _out(get_expense_for_user(session, expense_id=expense_id, user=user))


@router.patch("/expenses/{expense_id}", response_model=ExpenseOut)
def update_expense_endpoint(
    expense_id: uuid.UUID,
    payload: ExpenseUpdate,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    expense = update_expense(
        session,
        expense_id=expense_id,
        user=user,
        changes=payload.model_dump(exclude_unset=True),
    )
    return _out(expense)


@router.delete("/expenses/{expense_id}", status_code=204)
def remove_expense_endpoint(
    expense_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> None:
    remove_expense(session, expense_id=expense_id, user=user)


@router.post("/expenses/{expense_id}/submit", response_model=ExpenseOut)
def submit_expense_endpoint(
    expense_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    return _out(submit_expense(session, expense_id=expense_id, user=user))


@router.post("/expenses/{expense_id}/approve", response_model=ExpenseOut)
def approve_expense_endpoint(
    expense_id: uuid.UUID,
    payload: ExpenseApprove | None = None,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    note = payload.note if payload else None
    return _out(approve_expense(session, expense_id=expense_id, user=user, note=note))


@router.post("/expenses/{expense_id}/reject", response_model=ExpenseOut)
def reject_expense_endpoint(
    expense_id: uuid.UUID,
    payload: ExpenseReject,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    return _out(reject_expense(session, expense_id=expense_id, user=user, reason=payload.reason))


@router.post("/expenses/{expense_id}/adjust", response_model=ExpenseOut)
def adjust_expense_endpoint(
    expense_id: uuid.UUID,
    payload: ExpenseAdjust,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    expense = adjust_expense(
        session, expense_id=expense_id, user=user, amount=payload.amount, reason=payload.reason
    )
    return _out(expense)


@router.post("/expenses/{expense_id}/reimburse", response_model=ExpenseOut)
def reimburse_expense_endpoint(
    expense_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    return _out(reimburse_expense(session, expense_id=expense_id, user=user))


@router.post("/expenses/{expense_id}/notes", response_model=ExpenseOut)
def comment_expense_endpoint(
    expense_id: uuid.UUID,
    payload: CommentIn,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    return _out(
        comment_expense(session, expense_id=expense_id, user=user, message=payload.message)
    )


@router.post("/expenses/{expense_id}/files", response_model=ExpenseFileOut)
async def upload_expense_file_endpoint(
    expense_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseFileOut:
    body = await file.read()
    row = upload_expense_file(
        session,
        expense_id=expense_id,
        user=user,
        filename=file.filename or "arquivo",
        content_type=file.content_type,
        body=body,
    )
    return ExpenseFileOut.model_validate(row, from_attributes=True)


@router.delete("/expenses/{expense_id}/files/{file_id}", response_model=ExpenseOut)
def delete_expense_file_endpoint(
    expense_id: uuid.UUID,
    file_id: uuid.UUID,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ExpenseOut:
    return _out(delete_expense_file(session, expense_id=expense_id, file_id=file_id, user=user))


@router.get("/files/{storage_key:path}")
def download_file_endpoint(
    storage_key: str,
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> Response:
    row, body = read_expense_file(session, storage_key=storage_key, user=user)
    return Response(
        content=body,
        media_type=row.mime_type,
        headers={"Content-Disposition": f"inline; filename*=UTF-8''{quote(row.filename)}"},
    )
