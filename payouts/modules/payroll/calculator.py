# -*- coding: utf-8 -*-
"""
Payout amount for one team member. Pure: every input is passed in.

    percentage  payout_eur = round2(basis_total * payout_percentage)
    flat_fee    payout_eur = round2(payout_flat_fee)
    hybrid      payout_eur = round2(basis_total * payout_percentage) + round2(payout_flat_fee)
    none        payout_eur = 0

``payout_percentage`` is a fraction (0.1 is 10 %). The EUR amount is the
computed one; the USD amount is derived through the rate, and ``currency``
says which of the two the member is paid in.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ...errors import SchemaMismatchError
from ...fx import FxRate
from ...models.payroll import LINE_FIELDS
from ...money import D, ZERO, money_str, round2
from .aggregator import AggregatedBasis

PCT_STEP = Decimal("0.0001")
CURRENCIES = ("eur", "usd")

FORMULAS = {
    "percentage": "round2(basis_total * payout_percentage)",
    "flat_fee": "round2(payout_flat_fee)",
    "hybrid": "round2(basis_total * payout_percentage) + round2(payout_flat_fee)",
    "none": "0",
}


@dataclass(frozen=True)
class PreviewLine:
    team_member_id: int
    team_member_name: str
    department: str
    role: str
    category: str
    payout_type: str
    payout_percentage: Decimal | None
    payout_flat_fee: Decimal | None
    basis_webapp_amount: Decimal
    basis_manual_amount: Decimal
    bonus_amount: Decimal
    adjustments_amount: Decimal
    basis_total: Decimal
    payout_amount: Decimal
    amount_eur: Decimal
    amount_usd: Decimal
    currency: str
    fx_rate: float
    breakdown_json: str

    def line_values(self) -> dict[str, Any]:
        """Values for the persisted PayoutLine columns."""
        return {f: getattr(self, f) for f in LINE_FIELDS}

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "team_member_id": self.team_member_id,
            "team_member_name": self.team_member_name,
            "department": self.department,
            "role": self.role,
            "category": self.category,
        }
        for k, v in self.line_values().items():
            out[k] = float(v) if isinstance(v, Decimal) else v
        return out


def _payout_eur(payout_type: str, total: Decimal, pct: Decimal | None, flat: Decimal | None) -> Decimal:
    if payout_type == "percentage":
        return round2(total * pct)
    if payout_type == "flat_fee":
        return round2(flat)
    if payout_type == "hybrid":
        return round2(round2(total * pct) + flat)
    return ZERO


def compute(member, aggregated: AggregatedBasis, payout_config, fx_rate: FxRate) -> PreviewLine:
    payout_type = (payout_config.payout_type or "none").strip().lower()
    if payout_type not in FORMULAS:
        raise SchemaMismatchError(
            f"Team member {member.id} has unknown payout_type {payout_config.payout_type!r}; "
            f"expected one of {', '.join(FORMULAS)}."
        )
    currency = (payout_config.currency or "eur").strip().lower()
    if currency not in CURRENCIES:
        raise SchemaMismatchError(f"Team member {member.id} has unsupported currency {payout_config.currency!r}.")

    uses_pct = payout_type in ("percentage", "hybrid")
    uses_flat = payout_type in ("flat_fee", "hybrid")
    pct = D(payout_config.payout_percentage).quantize(PCT_STEP) if uses_pct else None
    flat = round2(payout_config.payout_flat_fee) if uses_flat else None

    amount_eur = _payout_eur(payout_type, aggregated.total, pct, flat)
    amount_usd = fx_rate.eur_to_usd(amount_eur)
    payout_amount = amount_eur if currency == "eur" else amount_usd

    breakdown = {
        "basis": aggregated.as_dict(),
        "payout_type": payout_type,
        "payout_percentage": f"{pct:f}" if pct is not None else None,
        "payout_flat_fee": money_str(flat) if flat is not None else None,
        "formula": FORMULAS[payout_type],
        "fx": fx_rate.to_dict(),
        "amount_eur": money_str(amount_eur),
        "amount_usd": money_str(amount_usd),
        "currency": currency,
    }

    return PreviewLine(
        team_member_id=member.id,
        team_member_name=getattr(member, "name", "") or "",
        department=getattr(member, "department", "") or "",
        role=getattr(member, "role", "") or "",
        category=getattr(member, "category", "") or "",
        payout_type=payout_type,
        payout_percentage=pct,
        payout_flat_fee=flat,
        basis_webapp_amount=aggregated.webapp,
        basis_manual_amount=aggregated.manual,
        bonus_amount=aggregated.bonus,
        adjustments_amount=aggregated.adjustments,
        basis_total=aggregated.total,
        payout_amount=payout_amount,
        amount_eur=amount_eur,
        amount_usd=amount_usd,
        currency=currency,
        fx_rate=fx_rate.rate,
        breakdown_json=json.dumps(breakdown, sort_keys=True, separators=(",", ":")),
    )
