# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from typing import Any

from ...errors import NotFoundError
from ...fx import FxRate, FxRateCache, get_fx_cache
from ...models import Month, MonthlyBasis, TeamMember
from ...store import get_record, list_records
from .adjustments import parse_id
from .aggregator import aggregate
from .calculator import PreviewLine, compute
from .reconcile import reconcile
from .runs import line_dict, run_dict

logger = logging.getLogger(__name__)


def load_month(month_id: int) -> Month:
    month = get_record(Month, month_id)
    if month is None:
        raise NotFoundError(f"Month {month_id} not found")
    return month


def build_preview(month: Month, fx: FxRate) -> list[PreviewLine]:
    roster = list_records(TeamMember, TeamMember.id, status="active")
    records = list_records(MonthlyBasis, MonthlyBasis.id, month_id=month.id)
    totals = aggregate(month.id, records, roster, fx)
    logger.info("month %s: %d members, %d basis rows, fx %s (%s)",
                month.month_key, len(roster), len(records), fx.rate, fx.source)
    return [compute(m, totals[m.id], m, fx) for m in roster]


def _month_dict(month: Month) -> dict:
    return {"id": month.id, "month_key": month.month_key, "month_name": month.month_name or ""}


def preview_month(raw_month_id: Any, fx_cache: FxRateCache | None = None) -> dict:
    month = load_month(parse_id(raw_month_id, "month_id"))
    fx = (fx_cache or get_fx_cache()).resolve()
    lines = build_preview(month, fx)
    return {
        "month": _month_dict(month),
        "fx": fx.to_dict(),
        "lines": [dict(p.to_dict(), month_key=month.month_key) for p in lines],
    }


def compute_month(raw_month_id: Any, user_email: str = "", fx_cache: FxRateCache | None = None) -> dict:
    """Compute a month and persist the run and its lines. Safe to repeat."""
    month = load_month(parse_id(raw_month_id, "month_id"))
    fx = (fx_cache or get_fx_cache()).resolve()
    preview = build_preview(month, fx)
    run, lines = reconcile(month.id, preview, user_email)

    run_out = run_dict(run, month)
    lines_out = [
        line_dict(line, month.month_key, run_out["status"], get_record(TeamMember, p.team_member_id))
        for p, line in zip(preview, lines)
    ]
    return {"run": run_out, "lines": lines_out, "fx": fx.to_dict()}
