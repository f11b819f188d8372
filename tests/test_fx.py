import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
import requests

from payouts import fx as fx_module
from payouts.fx import (
    SOURCE_DEFAULT,
    FxFetchError,
    FxRate,
    FxRateCache,
    build_fx_cache,
    fetch_internal_rate,
    fetch_provider_rate,
)

from conftest import StubFetcher


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeResponse:
    def __init__(self, status=200, body=None, bad_json=False):
        self.status_code = status
        self._body = body
        self._bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")

    def json(self):
        if self._bad_json:
            raise ValueError("no json")
        return self._body


def test_cached_value_served_within_ttl():
    clock = FakeClock()
    primary = StubFetcher(0.91)
    cache = FxRateCache([("primary", primary)], ttl_seconds=600, clock=clock)

    first = cache.resolve()
    clock.now += 599.9
    second = cache.resolve()

    assert first is second
    assert first.rate == 0.91
    assert primary.calls == 1


def test_resolution_after_ttl_refetches():
    clock = FakeClock()
    primary = StubFetcher(0.91)
    cache = FxRateCache([("primary", primary)], ttl_seconds=600, clock=clock)

    cache.resolve()
    clock.now += 600.1
    primary.rate = 0.93
    rate = cache.resolve()

    assert primary.calls == 2
    assert rate.rate == 0.93


def test_concurrent_cold_resolutions_share_one_fetch():
    gate = threading.Event()
    primary = StubFetcher(0.92, delay=gate)
    cache = FxRateCache([("primary", primary)])

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(cache.resolve) for _ in range(8)]
        # let every worker reach resolve() before the fetch completes
        threading.Timer(0.2, gate.set).start()
        results = [f.result(timeout=5) for f in futures]

    assert primary.calls == 1
    assert {r.rate for r in results} == {0.92}
    assert all(r.source == "primary" for r in results)


def test_joined_callers_fall_back_independently_when_chain_fails():
    gate = threading.Event()
    primary = StubFetcher(None, delay=gate)
    cache = FxRateCache([("primary", primary)], fallback_rate=0.9)

    with ThreadPoolExecutor(max_workers=4) as pool:
        futures = [pool.submit(cache.resolve) for _ in range(4)]
        threading.Timer(0.2, gate.set).start()
        results = [f.result(timeout=5) for f in futures]

    assert primary.calls == 1
    assert all(r.is_fallback and r.rate == 0.9 for r in results)


def test_chain_order_and_default_not_cached():
    primary = StubFetcher(None)
    internal = StubFetcher(None, source="internal")
    cache = FxRateCache([("primary", primary), ("internal", internal)])

    first = cache.resolve()
    assert first.source == SOURCE_DEFAULT
    assert first.rate == 0.92

    internal.rate = 0.95
    second = cache.resolve()
    assert second.rate == 0.95
    assert second.source == "internal"
    assert primary.calls == 2
    assert internal.calls == 2


@pytest.mark.parametrize("bad", [0, -1.0, float("nan"), float("inf")])
def test_invalid_rate_moves_to_next_stage(bad):
    broken = StubFetcher(bad)
    good = StubFetcher(0.94, source="internal")
    cache = FxRateCache([("primary", broken), ("internal", good)])

    assert cache.resolve().rate == 0.94


def test_invalid_fallback_rate_is_replaced():
    cache = FxRateCache([], fallback_rate=-3)
    assert cache.resolve().rate == 0.92


def test_fetch_provider_rate_parses_body(monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen.update(url=url, headers=headers, timeout=timeout)
        return FakeResponse(body={"amount": 1.0, "base": "USD", "date": "2024-07-31", "rates": {"EUR": 0.9231}})

    monkeypatch.setattr(fx_module.requests, "get", fake_get)
    rate = fetch_provider_rate("http://fx.test/latest", timeout=3)

    assert rate == FxRate(0.9231, "2024-07-31", "primary")
    assert seen["headers"] == {"Accept": "application/json"}
    assert seen["timeout"] == 3


@pytest.mark.parametrize("response", [
    FakeResponse(status=503, body={}),
    FakeResponse(bad_json=True),
    FakeResponse(body=["not", "a", "dict"]),
    FakeResponse(body={"rates": {}}),
    FakeResponse(body={"rates": {"EUR": "0.92"}}),
])
def test_fetch_provider_rate_failures(monkeypatch, response):
    monkeypatch.setattr(fx_module.requests, "get", lambda *a, **k: response)
    with pytest.raises(FxFetchError):
        fetch_provider_rate("http://fx.test/latest")


def test_fetch_provider_rate_network_error(monkeypatch):
    def boom(*a, **k):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(fx_module.requests, "get", boom)
    with pytest.raises(FxFetchError):
        fetch_provider_rate("http://fx.test/latest")


def test_fetch_internal_rate_rejects_fallback_answers(monkeypatch):
    monkeypatch.setattr(
        fx_module.requests, "get",
        lambda *a, **k: FakeResponse(body={"rate": 0.92, "as_of": "2024-07-31", "source": "default"}),
    )
    with pytest.raises(FxFetchError):
        fetch_internal_rate("http://self/api/fx/usd-eur")

    monkeypatch.setattr(
        fx_module.requests, "get",
        lambda *a, **k: FakeResponse(body={"rate": 0.93, "as_of": "2024-07-31", "source": "primary"}),
    )
    assert fetch_internal_rate("http://self/api/fx/usd-eur").source == "internal"


def test_fx_rate_direction_is_explicit():
    rate = FxRate(0.92, "2024-07-31")
    assert rate.eur_to_usd(100) == Decimal("108.70")
    assert rate.usd_to_eur(100) == Decimal("92.00")
    assert rate.convert(5, "eur", "EUR") == Decimal("5.00")
    with pytest.raises(ValueError):
        rate.convert(1, "GBP", "EUR")


def test_internal_stage_used_only_when_configured(monkeypatch):
    def fake_get(url, headers=None, timeout=None):
        if "provider" in url:
            raise requests.ConnectionError("down")
        return FakeResponse(body={"rate": 0.93, "as_of": "2024-07-31", "source": "primary"})

    monkeypatch.setattr(fx_module.requests, "get", fake_get)

    with_internal = build_fx_cache({
        "FX_API_URL": "http://provider.test/latest",
        "FX_INTERNAL_URL": "http://other-instance.test/api/fx/usd-eur",
    })
    without_internal = build_fx_cache({"FX_API_URL": "http://provider.test/latest", "FX_INTERNAL_URL": None})

    assert with_internal.resolve() == FxRate(0.93, "2024-07-31", "internal")
    assert without_internal.resolve().source == SOURCE_DEFAULT
