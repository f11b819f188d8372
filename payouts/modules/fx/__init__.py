# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from datetime import date

from flask import Blueprint, current_app, jsonify

from ...fx import SOURCE_DEFAULT, FxFetchError, FxRate, fetch_provider_rate

logger = logging.getLogger(__name__)

bp = Blueprint("fx", __name__, url_prefix="/api/fx")


@bp.get("/usd-eur")
def usd_eur():
    """
    Current USD->EUR rate straight from the provider, no cache.
    Always answers 200; a fallback answer carries source="default".
    """
    cfg = current_app.config
    try:
        fx = fetch_provider_rate(cfg["FX_API_URL"], cfg.get("FX_TIMEOUT_SECONDS", 5))
    except FxFetchError as e:
        logger.warning("fx provider failed: %s", e)
        fx = FxRate(cfg.get("FX_FALLBACK_RATE", 0.92), date.today().isoformat(), SOURCE_DEFAULT)
    res = jsonify(fx.to_dict())
    res.headers["Cache-Control"] = "private, no-store, no-cache"
    return res
