from decimal import Decimal

import pytest
import requests

from expenseflow.core.errors import ConversionError
from expenseflow.main import app
from expenseflow.services.currency import ExchangeRateService, get_rate_service


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeFetcher:
    def __init__(self, rates=None):
        self.rates = rates or {"USD": 1, "INR": 83.25, "EUR": 0.9}
        self.calls = []
        self.fail = False

    def __call__(self, base):
        self.calls.append(base)
        if self.fail:
            raise requests.ConnectionError("provider down")
        return dict(self.rates)


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(fetcher, clock):
    return ExchangeRateService(fetcher=fetcher, ttl_seconds=60, clock=clock)


def test_same_currency_is_identity(service, fetcher):
    assert service.convert(Decimal("12.34"), "INR", "inr") == Decimal("12.34")
    assert service.convert(7, "XYZ", "XYZ") == 7
    assert fetcher.calls == []


def test_convert_uses_rate(service):
    assert service.convert(Decimal("10"), "usd", "INR") == Decimal("832.50")


def test_rates_are_cached_until_ttl(service, fetcher, clock):
    service.fetch_rates("usd")
    service.fetch_rates("USD")
    assert fetcher.calls == ["USD"]

    clock.now += 61
    service.fetch_rates("USD")
    assert fetcher.calls == ["USD", "USD"]


def test_expired_cache_is_served_when_provider_fails(service, fetcher, clock):
    first = service.fetch_rates("USD")
    clock.now += 3600
    fetcher.fail = True

    assert service.fetch_rates("USD") == first


def test_fallback_table_when_nothing_cached(service, fetcher):
    fetcher.fail = True
    rates = service.fetch_rates("EUR")
    assert rates["USD"] == 1.09

    # fallback is not cached, the provider is retried next time
    fetcher.fail = False
    service.fetch_rates("EUR")
    assert fetcher.calls == ["EUR", "EUR"]


def test_unknown_base_without_provider_cannot_convert(service, fetcher):
    fetcher.fail = True
    assert service.fetch_rates("ZAR") == {"ZAR": 1}
    with pytest.raises(ConversionError):
        service.convert(Decimal("5"), "ZAR", "USD")


def test_missing_target_currency(service):
    with pytest.raises(ConversionError):
        service.get_rate("USD", "GBP")


class FakeResponse:
    def __init__(self, body):
        self.body = body

    def raise_for_status(self):
        pass

    def json(self):
        return self.body


@pytest.mark.parametrize(
    "body",
    [
        ["oops"],
        None,
        {"error": "rate limited"},
        {"rates": ["USD"]},
        {"rates": {"INR": "eighty"}},
    ],
)
def test_malformed_provider_body_falls_back(monkeypatch, body):
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse(body))

    rates = ExchangeRateService().fetch_rates("USD")

    assert rates["INR"] == 83.0


def test_provider_body_is_used_when_well_formed(monkeypatch):
    body = {"base": "USD", "rates": {"USD": 1, "INR": 84.1}}
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse(body))

    assert ExchangeRateService().fetch_rates("usd") == {"USD": 1, "INR": 84.1}


def test_rates_endpoint(client, service):
    app.dependency_overrides[get_rate_service] = lambda: service
    try:
        resp = client.get("/reference/rates/usd")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 200
    assert resp.json() == {"base": "USD", "rates": {"USD": 1, "INR": 83.25, "EUR": 0.9}}


def test_convert_endpoint(client, service):
    app.dependency_overrides[get_rate_service] = lambda: service
    try:
        ok = client.get("/reference/convert", params={"amount": "10", "from": "USD", "to": "INR"})
        failed = client.get("/reference/convert", params={"amount": "10", "from": "USD", "to": "GBP"})
    finally:
        app.dependency_overrides.clear()

    assert ok.status_code == 200
    body = ok.json()
    assert body["converted"] == 832.5
    assert body["fromCurrency"] == "USD"
    assert body["toCurrency"] == "INR"
    assert body["formatted"] == "₹832.50"

    assert failed.status_code == 502
    assert "GBP" in failed.json()["detail"]
