# -*- coding: utf-8 -*-
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def D(v: Any) -> Decimal:
    """Anything to Decimal; None and garbage become 0."""
    if v is None or v == "":
        return Decimal("0")
    try:
        d = v if isinstance(v, Decimal) else Decimal(str(v))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return d if d.is_finite() else Decimal("0")


def round2(v: Any) -> Decimal:
    """Round half away from zero to cents. Never returns -0.00."""
    q = D(v).quantize(CENT, rounding=ROUND_HALF_UP)
    return ZERO if q == 0 else q


def parse_amount(raw: Any) -> Decimal | None:
    """User input -> Decimal; empty or invalid -> None. Thousands commas are dropped."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float, Decimal)):
        s = str(raw)
    else:
        s = str(raw).strip().replace(",", "")
    if s == "":
        return None
    try:
        d = Decimal(s)
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def _valid_rate(rate: Any) -> Decimal | None:
    r = D(rate)
    return r if r > 0 else None


def convert_usd_to_eur(usd: Any, rate: Any) -> Decimal:
    """eur = usd * rate, rate being EUR per 1 USD."""
    r = _valid_rate(rate)
    if r is None:
        return ZERO
    return round2(D(usd) * r)


def convert_eur_to_usd(eur: Any, rate: Any) -> Decimal:
    """usd = eur / rate, rate being EUR per 1 USD."""
    r = _valid_rate(rate)
    if r is None:
        return ZERO
    return round2(D(eur) / r)


def ensure_dual_amounts(amount_usd: Any, amount_eur: Any, rate: Any) -> tuple[Decimal, Decimal]:
    """Fill whichever side of the (usd, eur) pair is missing from the other one."""
    usd = parse_amount(amount_usd)
    eur = parse_amount(amount_eur)
    has_rate = _valid_rate(rate) is not None
    if usd is not None and eur is not None:
        return round2(usd), round2(eur)
    if usd is not None and has_rate:
        return round2(usd), convert_usd_to_eur(usd, rate)
    if eur is not None and has_rate:
        return convert_eur_to_usd(eur, rate), round2(eur)
    return round2(usd), round2(eur)


def money_str(v: Any) -> str:
    return f"{round2(v):f}"
