"""Exchange rates with a per-base, time-bounded cache.

Rates come from exchangerate-api.com. When the provider fails, the last
cached table is served even if expired; with nothing cached a small static
table is used. That static table only knows a few bases, so converting from
any other base raises ``ConversionError`` instead of silently using 1.
"""

import time
from decimal import Decimal
from typing import Callable, Dict, Optional, Tuple, Union

import requests

from ..config import settings
from ..core.errors import ConversionError
from ..logging_config import get_logger

logger = get_logger(__name__)

Rates = Dict[str, float]

CACHE_TTL_SECONDS = 60 * 60

FALLBACK_RATES: Dict[str, Rates] = {
    "USD": {
        "USD": 1,
        "INR": 83.0,
        "EUR": 0.92,
        "GBP": 0.79,
        "CAD": 1.36,
        "AUD": 1.52,
        "JPY": 150.0,
        "CNY": 7.2,
        "BRL": 5.0,
    },
    "INR": {
        "USD": 0.012,
        "INR": 1,
        "EUR": 0.011,
        "GBP": 0.0095,
        "CAD": 0.016,
        "AUD": 0.018,
        "JPY": 1.8,
        "CNY": 0.087,
        "BRL": 0.06,
    },
    "EUR": {
        "USD": 1.09,
        "INR": 90.0,
        "EUR": 1,
        "GBP": 0.86,
        "CAD": 1.48,
        "AUD": 1.65,
        "JPY": 163.0,
        "CNY": 7.8,
        "BRL": 5.4,
    },
}


def fallback_rates(base: str) -> Rates:
    return dict(FALLBACK_RATES.get(base, {base: 1}))


def fetch_rates_from_api(base: str) -> Rates:
    url = settings.exchange_rate_api_url.format(base=base)
    resp = requests.get(url, timeout=settings.http_timeout_seconds)
    resp.raise_for_status()
    payload = resp.json()
    rates = payload.get("rates") if isinstance(payload, dict) else None
    if not isinstance(rates, dict):
        raise ValueError(f"No rates in response for {base}")
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in rates.values()):
        raise ValueError(f"Non-numeric rate in response for {base}")
    return rates


class ExchangeRateService:
    def __init__(
        self,
        fetcher: Optional[Callable[[str], Rates]] = None,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher or fetch_rates_from_api
        self._ttl = ttl_seconds
        self._clock = clock
        self._cache: Dict[str, Tuple[Rates, float]] = {}

    def fetch_rates(self, base: str) -> Rates:
        base = base.upper()
        now = self._clock()
        cached = self._cache.get(base)
        if cached and now - cached[1] < self._ttl:
            return cached[0]

        try:
            rates = self._fetcher(base)
        except (requests.RequestException, ValueError) as e:
            if cached:
                logger.warning("exchange_rates_stale", base=base, error=str(e))
                return cached[0]
            logger.warning("exchange_rates_fallback", base=base, error=str(e))
            return fallback_rates(base)

        self._cache[base] = (rates, now)
        return rates

    def get_rate(self, from_currency: str, to_currency: str) -> Decimal:
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return Decimal(1)
        rate = self.fetch_rates(from_currency).get(to_currency)
        if not rate:
            raise ConversionError(f"Failed to convert {from_currency} to {to_currency}")
        return Decimal(str(rate))

    def convert(
        self, amount: Union[Decimal, float, int], from_currency: str, to_currency: str
    ) -> Union[Decimal, float, int]:
        if from_currency.upper() == to_currency.upper():
            return amount
        return Decimal(str(amount)) * self.get_rate(from_currency, to_currency)


def _disabled_fetcher(base: str) -> Rates:
    raise requests.RequestException("external lookups disabled")


_service: Optional[ExchangeRateService] = None


def get_rate_service() -> ExchangeRateService:
    global _service
    if _service is None:
        _service = ExchangeRateService(
            fetcher=None if settings.external_lookups else _disabled_fetcher,
            ttl_seconds=settings.rate_cache_ttl_seconds,
        )
    return _service
