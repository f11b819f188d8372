# -*- coding: utf-8 -*-
from __future__ import annotations

from decimal import Decimal
from typing import Any

from .models.audit import AuditLog
from .store import apply_delta, create_record, update_record


def as_text(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, Decimal):
        return f"{v:f}"
    return str(v)


def write_audit_log(user_email: str, table: str, record_id: Any, field_name: str,
                    old_value: Any = "", new_value: Any = "") -> AuditLog:
    return create_record(
        AuditLog,
        user_email=user_email or "",
        table_name=table,
        record_id=str(record_id),
        field_name=field_name,
        old_value=as_text(old_value),
        new_value=as_text(new_value),
    )


def changed_fields(record, updates: dict[str, Any]) -> dict[str, tuple[str, str]]:
    """field -> (old, new) for every field whose text form would change."""
    out: dict[str, tuple[str, str]] = {}
    for field, new in updates.items():
        old_s, new_s = as_text(getattr(record, field)), as_text(new)
        if old_s != new_s:
            out[field] = (old_s, new_s)
    return out


def update_with_audit(user_email: str, table: str, record, updates: dict[str, Any]) -> list[AuditLog]:
    """Write only the changed fields and one audit entry per changed field."""
    diff = changed_fields(record, updates)
    if not diff:
        return []
    update_record(record, **{f: updates[f] for f in diff})
    return [write_audit_log(user_email, table, record.id, f, old, new) for f, (old, new) in diff.items()]


def apply_delta_with_audit(user_email: str, table: str, record, field: str, delta: Any) -> AuditLog | None:
    old = as_text(getattr(record, field))
    new = as_text(apply_delta(record, field, delta))
    if old == new:
        return None
    return write_audit_log(user_email, table, record.id, field, old, new)
