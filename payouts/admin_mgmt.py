# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, request
from flask_login import current_user

from .audit import update_with_audit
from .errors import NotFoundError, ValidationError, request_id
from .models.user import ROLES, User
from .security import roles_required
from .store import get_record

bp = Blueprint("admin_mgmt", __name__, url_prefix="/api")


# ---------- helpers ----------
def _user_updates(body: dict[str, Any]) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if "role" in body:
        if body["role"] not in ROLES:
            raise ValidationError(f"role must be one of {', '.join(ROLES)}")
        updates["role"] = body["role"]
    if "is_active" in body:
        if not isinstance(body["is_active"], bool):
            raise ValidationError("is_active must be true or false")
        updates["is_active"] = body["is_active"]
    if not updates:
        raise ValidationError("No allowed fields to update")
    return updates


# ---------- users ----------
@bp.patch("/users/<int:user_id>")
@roles_required("admin")
def update_user(user_id: int):
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON")
    updates = _user_updates(body)

    u = get_record(User, user_id)
    if u is None:
        raise NotFoundError("User not found")

    entries = update_with_audit(current_user.email, "users", u, updates)
    return jsonify({
        "ok": True,
        "request_id": request_id(),
        "user": u.to_dict(),
        "changed": [e.field_name for e in entries],
    })
