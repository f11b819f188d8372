# -*- coding: utf-8 -*-

from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, login_required
from ..errors import error_response
from ..models.user import User

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.post("/login")
def login():
    body = request.get_json(silent=True) or {}
    email = str(body.get("email") or "").strip().lower()
    password = str(body.get("password") or "")
    u = User.query.filter_by(email=email).first()
    if not u or not u.is_active or not u.check_password(password):
        return error_response(401, "Invalid email or password")
    login_user(u, remember=True)
    return jsonify({"ok": True, "user": u.to_dict()})


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True})
