# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ...fx import FxRate
from ...money import D, ZERO, money_str, round2

logger = logging.getLogger(__name__)

# basis_type -> bucket; fines are stored negative and land in adjustments
BUCKETS = {
    "webapp": "webapp",
    "manual": "manual",
    "bonus": "bonus",
    "fine": "adjustments",
    "adjustment": "adjustments",
}


@dataclass(frozen=True)
class AggregatedBasis:
    webapp: Decimal = ZERO
    manual: Decimal = ZERO
    bonus: Decimal = ZERO
    adjustments: Decimal = ZERO
    total: Decimal = ZERO

    @classmethod
    def from_components(cls, webapp=0, manual=0, bonus=0, adjustments=0) -> "AggregatedBasis":
        parts = [round2(webapp), round2(manual), round2(bonus), round2(adjustments)]
        return cls(*parts, total=round2(sum(parts, Decimal("0"))))

    def as_dict(self) -> dict[str, str]:
        return {
            "webapp": money_str(self.webapp),
            "manual": money_str(self.manual),
            "bonus": money_str(self.bonus),
            "adjustments": money_str(self.adjustments),
            "total": money_str(self.total),
        }


def _amount_eur(record, fx: FxRate | None) -> Decimal:
    if record.amount_eur is not None:
        return D(record.amount_eur)
    if record.amount_usd is not None and fx is not None:
        return fx.usd_to_eur(record.amount_usd)
    return Decimal("0")


def aggregate(month_id: int, basis_records: Iterable, roster: Iterable,
              fx: FxRate | None = None) -> dict[int, AggregatedBasis]:
    """
    Roll a month's basis records into one AggregatedBasis per roster member.

    Every roster member is present in the result, zero-filled when it has no
    records. Records from other months, of unknown type or for members
    outside the roster are skipped. Sums are rounded once per field.
    """
    sums: dict[int, dict[str, Decimal]] = {
        m.id: {"webapp": Decimal("0"), "manual": Decimal("0"), "bonus": Decimal("0"), "adjustments": Decimal("0")}
        for m in roster
    }
    not_on_roster: Counter = Counter()
    unknown_types: Counter = Counter()

    for r in basis_records:
        if r.month_id != month_id:
            continue
        bucket = BUCKETS.get((r.basis_type or "").strip().lower())
        if bucket is None:
            unknown_types[r.basis_type] += 1
            continue
        row = sums.get(r.team_member_id)
        if row is None:
            not_on_roster[r.team_member_id] += 1
            continue
        row[bucket] += _amount_eur(r, fx)

    if not_on_roster:
        logger.warning("month %s: basis rows for members not on roster: %s", month_id, dict(not_on_roster))
    if unknown_types:
        logger.warning("month %s: basis rows of unknown type: %s", month_id, dict(unknown_types))

    return {mid: AggregatedBasis.from_components(**row) for mid, row in sums.items()}
