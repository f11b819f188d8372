# -*- coding: utf-8 -*-
"""
USD/EUR rate resolution.

The rate is quoted USD base / EUR quote: ``1 USD = rate EUR``. EUR amounts are
turned into USD by dividing by the rate, USD into EUR by multiplying.

``FxRateCache`` keeps one resolved rate for a fixed TTL and lets exactly one
thread talk to the providers while the others wait for its result. The
provider chain is tried in order; when every stage fails the configured
default rate is returned (and not cached) so a payout computation never
blocks on FX.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from functools import partial
from typing import Any, Callable, Iterable

import requests
from flask import current_app

from .money import D, round2

logger = logging.getLogger(__name__)

SOURCE_PRIMARY = "primary"
SOURCE_INTERNAL = "internal"
SOURCE_DEFAULT = "default"


class FxFetchError(Exception):
    """One stage of the provider chain did not produce a usable rate."""


@dataclass(frozen=True)
class FxRate:
    rate: float
    as_of: str
    source: str = SOURCE_PRIMARY
    base_currency: str = "USD"
    quote_currency: str = "EUR"

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_DEFAULT

    def convert(self, amount: Any, from_ccy: str, to_ccy: str) -> Decimal:
        src, dst = from_ccy.upper(), to_ccy.upper()
        if src == dst:
            return round2(amount)
        if (src, dst) == (self.base_currency, self.quote_currency):
            return round2(D(amount) * D(self.rate))
        if (src, dst) == (self.quote_currency, self.base_currency):
            return round2(D(amount) / D(self.rate))
        raise ValueError(f"rate {self.base_currency}/{self.quote_currency} cannot convert {src}->{dst}")

    def eur_to_usd(self, amount: Any) -> Decimal:
        return self.convert(amount, "EUR", "USD")

    def usd_to_eur(self, amount: Any) -> Decimal:
        return self.convert(amount, "USD", "EUR")

    def to_dict(self) -> dict:
        return {
            "rate": self.rate,
            "as_of": self.as_of,
            "source": self.source,
            "base": self.base_currency,
            "quote": self.quote_currency,
        }


def checked_rate(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FxFetchError(f"rate is not a number: {value!r}")
    rate = float(value)
    if not math.isfinite(rate) or rate <= 0:
        raise FxFetchError(f"rate is not a positive finite number: {value!r}")
    return rate


def _get_json(url: str, timeout: float) -> dict:
    try:
        res = requests.get(url, headers={"Accept": "application/json"}, timeout=timeout)
        res.raise_for_status()
        data = res.json()
    except requests.RequestException as e:
        raise FxFetchError(f"GET {url} failed: {e}") from e
    except ValueError as e:
        raise FxFetchError(f"GET {url}: body is not JSON") from e
    if not isinstance(data, dict):
        raise FxFetchError(f"GET {url}: unexpected body {type(data).__name__}")
    return data


def _as_of(value: Any) -> str:
    return value if isinstance(value, str) and value else date.today().isoformat()


def fetch_provider_rate(url: str, timeout: float = 5) -> FxRate:
    """Provider body: ``{"rates": {"EUR": 0.92}, "date": "2024-07-31"}``."""
    data = _get_json(url, timeout)
    rates = data.get("rates")
    if not isinstance(rates, dict):
        raise FxFetchError("provider body has no rates")
    return FxRate(checked_rate(rates.get("EUR")), _as_of(data.get("date")), SOURCE_PRIMARY)


def fetch_internal_rate(url: str, timeout: float = 5) -> FxRate:
    """Our own /api/fx/usd-eur. Its default-rate answers count as failures."""
    data = _get_json(url, timeout)
    if data.get("source") == SOURCE_DEFAULT:
        raise FxFetchError("internal endpoint returned its fallback rate")
    return FxRate(checked_rate(data.get("rate")), _as_of(data.get("as_of")), SOURCE_INTERNAL)


Fetcher = Callable[[], FxRate]


class FxRateCache:
    def __init__(
        self,
        fetchers: Iterable[tuple[str, Fetcher]],
        ttl_seconds: float = 600,
        fallback_rate: float = 0.92,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetchers = list(fetchers)
        self._ttl = float(ttl_seconds)
        try:
            self._fallback_rate = checked_rate(fallback_rate)
        except FxFetchError:
            logger.warning("FX fallback rate %r is invalid, using 0.92", fallback_rate)
            self._fallback_rate = 0.92
        self._clock = clock
        self._lock = threading.Lock()
        self._value: FxRate | None = None
        self._expires_at = 0.0
        self._inflight: Future | None = None

    def resolve(self) -> FxRate:
        with self._lock:
            if self._value is not None and self._clock() < self._expires_at:
                return self._value
            fut = self._inflight
            leader = fut is None
            if leader:
                fut = self._inflight = Future()

        if not leader:
            rate = fut.result()
            return rate if rate is not None else self.default_rate()

        rate = None
        try:
            rate = self._fetch_upstream()
            if rate is not None:
                with self._lock:
                    self._value = rate
                    self._expires_at = self._clock() + self._ttl
        finally:
            with self._lock:
                self._inflight = None
            fut.set_result(rate)
        return rate if rate is not None else self.default_rate()

    def default_rate(self) -> FxRate:
        logger.warning("FX providers unavailable, using default rate %s", self._fallback_rate)
        return FxRate(self._fallback_rate, date.today().isoformat(), SOURCE_DEFAULT)

    def _fetch_upstream(self) -> FxRate | None:
        for name, fetch in self._fetchers:
            try:
                rate = fetch()
                checked_rate(rate.rate)
            except Exception as e:  # any stage failure moves on to the next stage
                logger.warning("FX stage %s failed: %s", name, e)
                continue
            logger.info("FX rate %s (as of %s) from %s", rate.rate, rate.as_of, name)
            return rate
        return None


def build_fx_cache(config) -> FxRateCache:
    timeout = config.get("FX_TIMEOUT_SECONDS", 5)
    fetchers: list[tuple[str, Fetcher]] = [
        (SOURCE_PRIMARY, partial(fetch_provider_rate, config["FX_API_URL"], timeout)),
    ]
    if config.get("FX_INTERNAL_URL"):
        fetchers.append((SOURCE_INTERNAL, partial(fetch_internal_rate, config["FX_INTERNAL_URL"], timeout)))
    return FxRateCache(
        fetchers,
        ttl_seconds=config.get("FX_CACHE_TTL_SECONDS", 600),
        fallback_rate=config.get("FX_FALLBACK_RATE", 0.92),
    )


def get_fx_cache() -> FxRateCache:
    return current_app.extensions["fx_cache"]
