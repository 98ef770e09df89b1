from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal

_CODE_RE = re.compile(r"^[A-Z]{3}$")

CENT = Decimal("0.01")


def normalize_currency(value: str | None) -> str | None:
    if value is None:
        return None
    code = value.strip().upper()
    if not _CODE_RE.match(code):
        return None
    return code


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return f"{quantize_money(value):.2f}"
