from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tripspend.api.deps import get_current_user, require_role
from tripspend.core.config import settings
from tripspend.core.currencies import normalize_currency
from tripspend.core.db import db_session
from tripspend.core.errors import BusinessRuleError
from tripspend.modules.fx.schemas import ConversionOut, FxRateOut, FxRateUpsert
from tripspend.modules.fx.service import (
    convert_to_base,
    get_exchange_rate,
    list_rates,
    sync_rates,
    upsert_fx_rate,
)
from tripspend.modules.identity.models import User, UserRole

router = APIRouter(tags=["fx"])


@router.get("/fx/rates", response_model=list[FxRateOut])
def list_rates_endpoint(
    currency: str | None = None,
    session: Session = Depends(db_session),
    _: User = Depends(get_current_user),
) -> list[FxRateOut]:
    rates = list_rates(session, currency=currency)
    return [FxRateOut.model_validate(r, from_attributes=True) for r in rates]


@router.put("/fx/rates", response_model=FxRateOut)
def upsert_rate_endpoint(
    payload: FxRateUpsert,
    session: Session = Depends(db_session),
    _: User = Depends(require_role(UserRole.ADMIN)),
) -> FxRateOut:
    fx = upsert_fx_rate(
        session,
        currency=payload.currency,
        rate=payload.rate,
        rate_date=payload.rate_date,
        source=payload.source or "manual",
    )
    return FxRateOut.model_validate(fx, from_attributes=True)


@router.post("/fx/rates/sync", response_model=list[FxRateOut])
def sync_rates_endpoint(
    session: Session = Depends(db_session),
    user: User = Depends(require_role(UserRole.ADMIN)),
) -> list[FxRateOut]:
    rates = sync_rates(session, tenant_id=user.tenant_id)
    return [FxRateOut.model_validate(r, from_attributes=True) for r in rates]


@router.get("/fx/convert", response_model=ConversionOut)
def convert_endpoint(
    amount: Decimal = Query(gt=0),
    currency: str = Query(),
    session: Session = Depends(db_session),
    user: User = Depends(get_current_user),
) -> ConversionOut:
    code = normalize_currency(currency)
    if not code:
        raise BusinessRuleError("Moeda inválida")
    if code == settings.base_currency:
        rate = Decimal("1")
    else:
        rate = get_exchange_rate(session, currency=code, tenant_id=user.tenant_id)
    amount_base = convert_to_base(
        session, amount=amount, from_currency=code, tenant_id=user.tenant_id
    )
    return ConversionOut(
        amount=amount,
        currency=code,
        rate=rate,
        amount_base=amount_base,
        base_currency=settings.base_currency,
    )
