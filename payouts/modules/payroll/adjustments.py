# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any

from ...audit import write_audit_log
from ...errors import NotFoundError, SchemaMismatchError, ValidationError
from ...fx import FxRateCache, get_fx_cache
from ...models import BasisTypeOption, Month, MonthlyBasis, TeamMember
from ...money import parse_amount, round2
from ...store import create_record, get_record, list_records

logger = logging.getLogger(__name__)

ADJUSTMENT_TYPES = ("bonus", "fine")
# Numeric(12, 2) upper bound
MAX_AMOUNT = Decimal("9999999999.99")


def parse_id(raw: Any, name: str) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(f"{name} is required")
    if isinstance(raw, bool):
        raise ValidationError(f"{name} must be a positive integer")
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be a positive integer") from None
    if value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return value


def validate_adjustment(month_id: Any, team_member_id: Any, kind: Any, amount_eur: Any) -> tuple[int, int, str, Decimal]:
    """Checks done before touching the store."""
    mid = parse_id(month_id, "month_id")
    tmid = parse_id(team_member_id, "team_member_id")
    if kind not in ADJUSTMENT_TYPES:
        raise ValidationError('type must be "bonus" or "fine"')
    amount = parse_amount(amount_eur)
    if amount is None or amount > MAX_AMOUNT or round2(amount) <= 0:
        raise ValidationError("amount_eur must be a positive number")
    return mid, tmid, kind, amount


def ensure_basis_type_configured(kind: str) -> None:
    configured = {o.name for o in list_records(BasisTypeOption)}
    if kind not in configured:
        raise SchemaMismatchError(f'Add option "{kind}" to monthly_basis.basis_type in the record store.')


def record_adjustment(month_id: Any, team_member_id: Any, kind: Any, amount_eur: Any,
                      notes: str = "", user_email: str = "",
                      fx_cache: FxRateCache | None = None) -> MonthlyBasis:
    """
    Store a bonus (positive) or fine (negative) basis record.

    Both currencies are stored with the same sign. When no FX provider
    answers, the default rate is used and ``fx_source`` records that.
    """
    mid, tmid, kind, amount = validate_adjustment(month_id, team_member_id, kind, amount_eur)

    ensure_basis_type_configured(kind)
    if get_record(Month, mid) is None:
        raise NotFoundError(f"Month {mid} not found")
    if get_record(TeamMember, tmid) is None:
        raise NotFoundError(f"Team member {tmid} not found")

    fx = (fx_cache or get_fx_cache()).resolve()
    if fx.is_fallback:
        logger.warning("adjustment for member %s month %s uses fallback FX rate %s", tmid, mid, fx.rate)

    eur = round2(amount)
    usd = fx.eur_to_usd(amount)
    if kind == "fine":
        eur, usd = round2(-eur), round2(-usd)

    record = create_record(
        MonthlyBasis,
        month_id=mid,
        team_member_id=tmid,
        basis_type=kind,
        amount_eur=eur,
        amount_usd=usd,
        notes=(notes or "").strip(),
        fx_rate=fx.rate,
        fx_as_of=fx.as_of,
        fx_source=fx.source,
    )
    write_audit_log(user_email, "monthly_basis", record.id, "create", "",
                    json.dumps(record.to_dict(), sort_keys=True))
    logger.info("recorded %s %s EUR for member %s month %s (basis #%s)", kind, eur, tmid, mid, record.id)
    return record
