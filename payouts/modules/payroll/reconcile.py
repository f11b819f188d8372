# -*- coding: utf-8 -*-
"""
Persisting computed lines: one run per month, one line per (run, member).

Nothing here locks. Two computations of the same month race through the
lookups and converge because every write is an upsert keyed by the unique
columns; a losing insert falls back to the row the winner created.
"""
from __future__ import annotations

import hashlib
import json
import logging
from typing import Iterable

from ...audit import update_with_audit, write_audit_log
from ...errors import RunFinalizedError
from ...models.audit import AuditLog
from ...models.payroll import PayoutLine, PayoutRun
from ...store import DuplicateRecordError, create_record, list_records
from .calculator import PreviewLine

logger = logging.getLogger(__name__)

RUNS_TABLE = "payout_runs"
LINES_TABLE = "payout_lines"


def _runs_for_month(month_id: int) -> list[PayoutRun]:
    return list_records(PayoutRun, PayoutRun.created_at.desc(), PayoutRun.id.desc(), month_id=month_id)


def get_or_create_run(month_id: int) -> PayoutRun:
    runs = _runs_for_month(month_id)
    if runs:
        if len(runs) > 1:
            logger.warning("month %s has %d payout runs, using #%s", month_id, len(runs), runs[0].id)
        return runs[0]
    try:
        run = create_record(PayoutRun, month_id=month_id, status="draft", notes="")
    except DuplicateRecordError:
        runs = _runs_for_month(month_id)
        if not runs:
            raise
        return runs[0]
    logger.info("created payout run #%s for month %s", run.id, month_id)
    return run


def _create_line(run: PayoutRun, p: PreviewLine, user_email: str) -> PayoutLine:
    try:
        line = create_record(PayoutLine, run_id=run.id, team_member_id=p.team_member_id, **p.line_values())
    except DuplicateRecordError:
        line = list_records(PayoutLine, run_id=run.id, team_member_id=p.team_member_id)[0]
        update_with_audit(user_email, LINES_TABLE, line, p.line_values())
        return line
    write_audit_log(user_email, LINES_TABLE, line.id, "create", "",
                    json.dumps({"run_id": run.id, "team_member_id": p.team_member_id}, sort_keys=True))
    return line


def upsert_lines(run: PayoutRun, preview_lines: Iterable[PreviewLine], user_email: str = "") -> list[PayoutLine]:
    existing = {l.team_member_id: l for l in list_records(PayoutLine, run_id=run.id)}
    seen: set[int] = set()
    out: list[PayoutLine] = []
    for p in preview_lines:
        seen.add(p.team_member_id)
        line = existing.get(p.team_member_id)
        if line is None:
            line = _create_line(run, p, user_email)
        else:
            update_with_audit(user_email, LINES_TABLE, line, p.line_values())
        out.append(line)

    stale = sorted(mid for mid in existing if mid not in seen)
    if stale:
        logger.warning("run #%s keeps lines for members no longer computed: %s", run.id, stale)
    return out


def compute_marker(month_id: int, preview_lines: Iterable[PreviewLine]) -> str:
    rows = [p.to_dict() for p in preview_lines]
    digest = hashlib.sha256(json.dumps(rows, sort_keys=True).encode("utf-8")).hexdigest()
    return json.dumps({"month_id": month_id, "lines_count": len(rows), "digest": digest}, sort_keys=True)


def _last_marker(run: PayoutRun) -> str:
    entries = list_records(
        AuditLog, AuditLog.id.desc(),
        table_name=RUNS_TABLE, record_id=str(run.id), field_name="compute",
    )
    return (entries[0].new_value or "") if entries else ""


def reconcile(month_id: int, preview_lines: list[PreviewLine], user_email: str = "") -> tuple[PayoutRun, list[PayoutLine]]:
    run = get_or_create_run(month_id)
    if run.status == "finalized":
        raise RunFinalizedError(f"Payout run #{run.id} for month {month_id} is finalized and cannot be recomputed")

    lines = upsert_lines(run, preview_lines, user_email)

    marker = compute_marker(month_id, preview_lines)
    previous = _last_marker(run)
    if marker != previous:
        write_audit_log(user_email, RUNS_TABLE, run.id, "compute", previous, marker)
    return run, lines
