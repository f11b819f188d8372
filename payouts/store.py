# -*- coding: utf-8 -*-
"""
Record store access used by the payout core.

Only four primitives are relied upon (list by filter, get by id, create,
update), each committed on its own: there are no multi-row transactions.
``apply_delta`` is the single additive mutation allowed on existing records.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import RecordStoreError
from .extensions import db
from .money import D, round2

logger = logging.getLogger(__name__)


class DuplicateRecordError(RecordStoreError):
    """A unique constraint rejected the write."""


def _commit() -> None:
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise DuplicateRecordError(str(e.orig)) from e
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RecordStoreError(str(e)) from e


def list_records(model, *order_by, **filters) -> list:
    stmt = db.select(model).filter_by(**filters)
    if order_by:
        stmt = stmt.order_by(*order_by)
    try:
        return list(db.session.scalars(stmt))
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RecordStoreError(str(e)) from e


def get_record(model, record_id):
    try:
        return db.session.get(model, record_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RecordStoreError(str(e)) from e


def create_record(model, **fields):
    obj = model(**fields)
    db.session.add(obj)
    _commit()
    return obj


def update_record(record, **fields):
    for k, v in fields.items():
        setattr(record, k, v)
    _commit()
    return record


def apply_delta(record, field: str, delta: Any) -> Decimal:
    """
    Accumulate into an existing money field: new = round2(current + delta).

    Unlike the replace semantics of ``update_record`` the stored value grows
    by ``delta``; a missing current value counts as 0.
    """
    new_value = round2(D(getattr(record, field)) + D(delta))
    update_record(record, **{field: new_value})
    logger.info("%s#%s.%s += %s -> %s", record.__tablename__, record.id, field, delta, new_value)
    return new_value
