from __future__ import annotations

import os
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import select

from tripspend.core.config import settings
from tripspend.core.errors import BusinessRuleError, NotFoundError
from tripspend.core.storage import get_storage
from tripspend.modules.expenses.models import ExpenseCategory, ExpenseFile, ExpenseStatus
from tripspend.modules.expenses.service import (
    create_expense,
    delete_expense_file,
    read_expense_file,
    remove_expense,
    submit_expense,
    upload_expense_file,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _food_expense(session, org, amount="89.90"):
    return create_expense(
        session,
        user=org.collaborator,
        category=ExpenseCategory.FOOD,
        expense_date=date(2026, 6, 1),
        amount=Decimal(amount),
        cost_center_id=org.sales.id,
    )


def _upload(session, org, expense, *, content_type="image/png", body=PNG, filename="nota.PNG"):
    return upload_expense_file(
        session,
        expense_id=expense.id,
        user=org.collaborator,
        filename=filename,
        content_type=content_type,
        body=body,
    )


def test_upload_marks_receipt_and_unblocks_submission(session, org):
    expense = _food_expense(session, org)
    assert expense.policy_check["receipt_missing"] is True

    row = _upload(session, org, expense)
    assert row.storage_key.startswith(f"{org.tenant.id}/expense-receipts/")
    assert row.storage_key.endswith(".png")
    assert row.size == len(PNG)
    assert row.mime_type == "image/png"
    assert get_storage().get(key=row.storage_key) == PNG

    session.refresh(expense)
    assert expense.has_receipt is True
    assert expense.policy_check["valid"] is True

    submitted = submit_expense(session, expense_id=expense.id, user=org.collaborator)
    assert submitted.status == ExpenseStatus.SUBMITTED


def test_deleting_last_file_clears_receipt_flag(session, org):
    expense = _food_expense(session, org)
    first = _upload(session, org, expense)
    second = _upload(session, org, expense, content_type="application/pdf", filename="nf.pdf")

    after_one = delete_expense_file(
        session, expense_id=expense.id, file_id=first.id, user=org.collaborator
    )
    assert after_one.has_receipt is True
    assert [f.id for f in after_one.files] == [second.id]

    after_both = delete_expense_file(
        session, expense_id=expense.id, file_id=second.id, user=org.collaborator
    )
    assert after_both.has_receipt is False
    assert after_both.policy_check["receipt_missing"] is True

    with pytest.raises(NotFoundError) as exc:
        delete_expense_file(
            session, expense_id=expense.id, file_id=second.id, user=org.collaborator
        )
    assert exc.value.detail == "Arquivo não encontrado"


def test_unsupported_mime_type_is_rejected(session, org):
    expense = _food_expense(session, org)
    with pytest.raises(BusinessRuleError) as exc:
        _upload(session, org, expense, content_type="application/x-msdownload", filename="a.exe")
    assert exc.value.detail == "Tipo de arquivo não permitido"
    assert session.scalar(select(ExpenseFile)) is None


def test_oversized_file_is_rejected(session, org, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 10)
    expense = _food_expense(session, org)
    with pytest.raises(BusinessRuleError):
        _upload(session, org, expense)
    session.refresh(expense)
    assert expense.has_receipt is False


def test_colleague_cannot_attach_files(session, org):
    expense = _food_expense(session, org)
    with pytest.raises(BusinessRuleError):
        upload_expense_file(
            session,
            expense_id=expense.id,
            user=org.colleague,
            filename="x.png",
            content_type="image/png",
            body=PNG,
        )


def test_remove_expense_deletes_stored_objects(session, org):
    expense = _food_expense(session, org)
    row = _upload(session, org, expense)
    path = Path(os.environ["LOCAL_STORAGE_PATH"]).resolve() / row.storage_key
    assert path.exists()

    remove_expense(session, expense_id=expense.id, user=org.collaborator)
    assert not path.exists()
    assert session.scalar(select(ExpenseFile)) is None


def test_storage_failures_do_not_block_removal(session, org, monkeypatch):
    expense = _food_expense(session, org)
    _upload(session, org, expense)

    storage = get_storage()

    def _boom(*, key):
        raise OSError("disk gone")

    monkeypatch.setattr(storage, "delete", _boom)
    remove_expense(session, expense_id=expense.id, user=org.collaborator)
    assert session.scalar(select(ExpenseFile)) is None


def test_read_file_respects_visibility(session, org, other_org):
    expense = _food_expense(session, org)
    row = _upload(session, org, expense)

    found, body = read_expense_file(session, storage_key=row.storage_key, user=org.manager)
    assert found.id == row.id
    assert body == PNG

    with pytest.raises(NotFoundError):
        read_expense_file(session, storage_key=row.storage_key, user=org.colleague)
    with pytest.raises(NotFoundError):
        read_expense_file(session, storage_key=row.storage_key, user=other_org.admin)


def test_failed_commit_removes_the_uploaded_object(session, org, monkeypatch):
    expense = _food_expense(session, org)

    def _db_down():
        raise RuntimeError("db down")

    monkeypatch.setattr(session, "commit", _db_down)
    with pytest.raises(RuntimeError):
        _upload(session, org, expense)
    monkeypatch.undo()

    assert not (Path(os.environ["LOCAL_STORAGE_PATH"]) / str(org.tenant.id)).exists()
    assert session.scalars(select(ExpenseFile)).all() == []
