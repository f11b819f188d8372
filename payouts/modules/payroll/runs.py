# -*- coding: utf-8 -*-
"""
Reading a payout run back and moving it through its lifecycle.

A run is ``draft`` while it may be recomputed and ``finalized`` once its
lines are settled; only an admin may reopen a finalized run.
"""
from __future__ import annotations

import logging
from typing import Any

from ...audit import update_with_audit
from ...errors import NotFoundError, RunFinalizedError, ValidationError
from ...models import Month, PayoutLine, PayoutRun, TeamMember
from ...store import get_record, list_records
from .reconcile import RUNS_TABLE

logger = logging.getLogger(__name__)

RUN_STATUSES = ("draft", "finalized")


def load_run(run_id: int) -> PayoutRun:
    run = get_record(PayoutRun, run_id)
    if run is None:
        raise NotFoundError(f"Payout run {run_id} not found")
    return run


def run_dict(run: PayoutRun, month: Month | None) -> dict:
    return {
        "id": run.id,
        "month_id": run.month_id,
        "month_key": month.month_key if month else "",
        "status": run.status or "draft",
        "notes": run.notes or "",
    }


def line_dict(line: PayoutLine, month_key: str, run_status: str, member=None) -> dict:
    row = line.to_dict()
    row.update(
        team_member_name=getattr(member, "name", "") or "",
        department=getattr(member, "department", "") or "",
        role=getattr(member, "role", "") or "",
        category=getattr(member, "category", "") or "",
        month_key=month_key,
        run_status=run_status,
    )
    return row


def run_detail(run_id: int) -> dict:
    run = load_run(run_id)
    month = get_record(Month, run.month_id)
    out = run_dict(run, month)
    lines = []
    for line in list_records(PayoutLine, PayoutLine.id, run_id=run.id):
        member = get_record(TeamMember, line.team_member_id)
        lines.append(line_dict(line, out["month_key"], out["status"], member))
    return {"run": out, "lines": lines}


def _run_updates(body: dict[str, Any]) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if "status" in body:
        status = body["status"].strip().lower() if isinstance(body["status"], str) else None
        if status not in RUN_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(RUN_STATUSES)}")
        updates["status"] = status
    if "notes" in body:
        if not isinstance(body["notes"], str):
            raise ValidationError("notes must be a string")
        updates["notes"] = body["notes"]
    if not updates:
        raise ValidationError("No allowed fields to update")
    return updates


def update_run(run_id: int, body: Any, user_email: str = "", user_role: str = "") -> dict:
    """Change status and/or notes; one audit entry per field that actually changes."""
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")
    updates = _run_updates(body)

    run = load_run(run_id)
    if run.status == "finalized" and updates.get("status") == "draft" and user_role != "admin":
        raise RunFinalizedError(f"Payout run #{run.id} is finalized; only an admin can reopen it")

    old_status = run.status or "draft"
    entries = update_with_audit(user_email, RUNS_TABLE, run, updates)
    if run.status != old_status:
        logger.info("payout run #%s: %s -> %s by %s", run.id, old_status, run.status, user_email or "?")

    month = get_record(Month, run.month_id)
    return {"run": run_dict(run, month), "changed": [e.field_name for e in entries]}
