# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user

from ...errors import ValidationError, request_id
from ...security import roles_required
from .adjustments import record_adjustment
from .runs import run_detail, update_run
from .service import compute_month, preview_month

bp = Blueprint("payroll", __name__, url_prefix="/api")


def _month_id_arg():
    mid = request.args.get("month_id")
    if mid is None:
        mid = (request.get_json(silent=True) or {}).get("month_id")
    return mid


@bp.post("/payout-runs/compute")
@roles_required("admin", "finance")
def compute():
    result = compute_month(_month_id_arg(), current_user.email)
    return jsonify({"ok": True, "request_id": request_id(), **result})


@bp.get("/payout-runs/preview")
@roles_required("admin", "finance")
def preview():
    result = preview_month(_month_id_arg())
    return jsonify({"ok": True, "request_id": request_id(), **result})


@bp.get("/payout-runs/<int:run_id>")
@roles_required("admin", "finance", "viewer")
def get_run(run_id: int):
    return jsonify({"ok": True, "request_id": request_id(), **run_detail(run_id)})


@bp.patch("/payout-runs/<int:run_id>")
@roles_required("admin", "finance")
def patch_run(run_id: int):
    result = update_run(run_id, request.get_json(silent=True), current_user.email, current_user.role)
    return jsonify({"ok": True, "request_id": request_id(), **result})


@bp.post("/payout-lines/adjustment")
@roles_required("admin", "finance")
def adjustment():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")
    notes = body.get("notes")
    rec = record_adjustment(
        body.get("month_id"),
        body.get("team_member_id"),
        body.get("type"),
        body.get("amount_eur"),
        notes=notes if isinstance(notes, str) else "",
        user_email=current_user.email,
    )
    return jsonify({"ok": True, "request_id": request_id(), "record": rec.to_dict()}), 201
