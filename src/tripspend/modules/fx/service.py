from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Protocol

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from tripspend.core.config import settings
from tripspend.core.currencies import normalize_currency, quantize_money
from tripspend.core.errors import BusinessRuleError
from tripspend.core.logging import get_logger, log_event, log_exception
from tripspend.core.timeutil import local_today
from tripspend.modules.fx.models import FxRate
from tripspend.modules.tenants.models import Tenant

logger = get_logger(__name__)


class RateSource(Protocol):
    name: str

    def get_rate(self, currency: str, on: date) -> Decimal | None: ...


class FrankfurterRateSource:
    """Daily reference rates quoted as base-currency units per one ``currency``."""

    name = "frankfurter.app"

    def __init__(self, *, base_currency: str | None = None) -> None:
        self._base = (base_currency or settings.base_currency).upper()

    def get_rate(self, currency: str, on: date) -> Decimal | None:
        resp = httpx.get(
            f"{settings.fx_api_url.rstrip('/')}/{on.isoformat()}",
            params={"from": currency, "to": self._base},
            timeout=settings.fx_api_timeout_s,
            follow_redirects=True,
        )
        resp.raise_for_status()
        raw_rate = (resp.json().get("rates") or {}).get(self._base)
        if raw_rate is None:
            return None
        return Decimal(str(raw_rate))


def tenant_timezone(session: Session, *, tenant_id: uuid.UUID | None) -> str:
    if tenant_id is None:
        return settings.default_timezone
    tz = session.scalar(select(Tenant.timezone).where(Tenant.id == tenant_id))
    return tz or settings.default_timezone


def get_exchange_rate(
    session: Session, *, currency: str, tenant_id: uuid.UUID | None = None
) -> Decimal:
    currency = currency.upper()
    today = local_today(tenant_timezone(session, tenant_id=tenant_id))

    fx = session.scalar(
        select(FxRate).where(FxRate.currency == currency, FxRate.rate_date == today)
    )
    if not fx:
        fx = session.scalar(
            select(FxRate)
            .where(FxRate.currency == currency, FxRate.rate_date <= today)
            .order_by(FxRate.rate_date.desc())
            .limit(1)
        )
    if fx:
        return Decimal(fx.rate)

    default = settings.fx_default_rates.get(currency)
    if default is not None:
        log_event(logger, "fx.rate.default", currency=currency)
        return Decimal(default)

    log_event(logger, "fx.rate.unknown_currency", level=logging.WARNING, currency=currency)
    return Decimal("1")


def convert_to_base(
    session: Session,
    *,
    amount: Decimal,
    from_currency: str,
    tenant_id: uuid.UUID | None = None,
) -> Decimal:
    from_currency = from_currency.upper()
    if from_currency == settings.base_currency:
        return quantize_money(amount)
    rate = get_exchange_rate(session, currency=from_currency, tenant_id=tenant_id)
    # Rates are stored as base units per foreign unit, yet amounts are divided by them.
    # Kept as-is until the intended direction is confirmed; see DESIGN.md.
    return quantize_money(Decimal(amount) / rate)


def upsert_fx_rate(
    session: Session,
    *,
    currency: str,
    rate: Decimal,
    rate_date: date,
    source: str | None = None,
    commit: bool = True,
) -> FxRate:
    code = normalize_currency(currency)
    if not code:
        raise BusinessRuleError("Moeda inválida")
    if rate <= 0:
        raise BusinessRuleError("Taxa de câmbio deve ser maior que zero")

    fx = session.scalar(
        select(FxRate).where(FxRate.currency == code, FxRate.rate_date == rate_date)
    )
    if not fx:
        fx = FxRate(currency=code, rate_date=rate_date, rate=rate, source=source)
    else:
        fx.rate = rate
        fx.source = source
    session.add(fx)
    if commit:
        session.commit()
        session.refresh(fx)
    return fx


def sync_rates(
    session: Session,
    *,
    tenant_id: uuid.UUID | None = None,
    source: RateSource | None = None,
) -> list[FxRate]:
    source = source or FrankfurterRateSource()
    today = local_today(tenant_timezone(session, tenant_id=tenant_id))

    out: list[FxRate] = []
    skipped: list[str] = []
    for currency in settings.fx_sync_currencies:
        try:
            rate = source.get_rate(currency, today)
        except httpx.HTTPError:
            log_exception(logger, "fx.rate.fetch_failure", currency=currency, source=source.name)
            skipped.append(currency)
            continue
        if rate is None or rate <= 0:
            skipped.append(currency)
            continue
        out.append(
            upsert_fx_rate(
                session,
                currency=currency,
                rate=rate,
                rate_date=today,
                source=source.name,
                commit=False,
            )
        )
    session.commit()
    for fx in out:
        session.refresh(fx)

    log_event(
        logger,
        "fx.rates.synced",
        rate_date=today.isoformat(),
        synced=[fx.currency for fx in out],
        skipped=skipped or None,
        source=source.name,
    )
    return out


def list_rates(session: Session, *, currency: str | None = None, limit: int = 100) -> list[FxRate]:
    q = select(FxRate)
    if currency:
        q = q.where(FxRate.currency == currency.upper())
    return list(
        session.scalars(q.order_by(FxRate.rate_date.desc(), FxRate.currency.asc()).limit(limit))
    )
