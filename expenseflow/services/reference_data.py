"""Country and currency reference data.

Static tables cover the lookups the store needs at write time (a user's or
company's currency is derived from its country). ``CountryDirectory`` adds
the full country list from restcountries.com for the onboarding screens and
falls back to a short static list when that API is unavailable.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional, Union

import requests

from ..config import settings
from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CURRENCY = "USD"

COUNTRY_CURRENCIES = {
    "United States": "USD",
    "India": "INR",
    "United Kingdom": "GBP",
    "Canada": "CAD",
    "Australia": "AUD",
    "Germany": "EUR",
    "France": "EUR",
    "Japan": "JPY",
    "China": "CNY",
    "Brazil": "BRL",
    "Mexico": "MXN",
    "South Korea": "KRW",
    "Singapore": "SGD",
    "Netherlands": "EUR",
    "Switzerland": "CHF",
    "Sweden": "SEK",
    "Norway": "NOK",
    "Denmark": "DKK",
    "New Zealand": "NZD",
    "South Africa": "ZAR",
    "Russia": "RUB",
    "Turkey": "TRY",
    "Saudi Arabia": "SAR",
    "United Arab Emirates": "AED",
    "Israel": "ILS",
    "Thailand": "THB",
    "Malaysia": "MYR",
    "Indonesia": "IDR",
    "Philippines": "PHP",
    "Vietnam": "VND",
    "Taiwan": "TWD",
    "Hong Kong": "HKD",
    "Ireland": "EUR",
    "Belgium": "EUR",
    "Austria": "EUR",
    "Italy": "EUR",
    "Spain": "EUR",
    "Portugal": "EUR",
    "Finland": "EUR",
    "Poland": "PLN",
    "Czech Republic": "CZK",
    "Hungary": "HUF",
    "Romania": "RON",
    "Bulgaria": "BGN",
    "Croatia": "EUR",
    "Slovenia": "EUR",
    "Slovakia": "EUR",
    "Estonia": "EUR",
    "Latvia": "EUR",
    "Lithuania": "EUR",
    "Luxembourg": "EUR",
    "Malta": "EUR",
    "Cyprus": "EUR",
    "Greece": "EUR",
    "Argentina": "ARS",
    "Chile": "CLP",
    "Colombia": "COP",
    "Peru": "PEN",
    "Venezuela": "VES",
    "Uruguay": "UYU",
    "Paraguay": "PYG",
    "Bolivia": "BOB",
    "Ecuador": "USD",
    "Guyana": "GYD",
    "Suriname": "SRD",
    "Egypt": "EGP",
    "Nigeria": "NGN",
    "Kenya": "KES",
    "Ghana": "GHS",
    "Morocco": "MAD",
    "Tunisia": "TND",
    "Algeria": "DZD",
    "Ethiopia": "ETB",
    "Uganda": "UGX",
    "Tanzania": "TZS",
    "Zimbabwe": "ZWL",
    "Botswana": "BWP",
    "Namibia": "NAD",
    "Zambia": "ZMW",
    "Malawi": "MWK",
    "Mozambique": "MZN",
    "Angola": "AOA",
    "Madagascar": "MGA",
    "Mauritius": "MUR",
    "Seychelles": "SCR",
    "Comoros": "KMF",
    "Djibouti": "DJF",
    "Eritrea": "ERN",
    "Somalia": "SOS",
    "Sudan": "SDG",
    "South Sudan": "SSP",
    "Central African Republic": "XAF",
    "Chad": "XAF",
    "Cameroon": "XAF",
    "Republic of the Congo": "XAF",
    "Democratic Republic of the Congo": "CDF",
    "Equatorial Guinea": "XAF",
    "Gabon": "XAF",
    "São Tomé and Príncipe": "STN",
    "Cape Verde": "CVE",
    "Guinea-Bissau": "XOF",
    "Guinea": "GNF",
    "Sierra Leone": "SLE",
    "Liberia": "LRD",
    "Ivory Coast": "XOF",
    "Burkina Faso": "XOF",
    "Mali": "XOF",
    "Niger": "XOF",
    "Senegal": "XOF",
    "Gambia": "GMD",
    "Mauritania": "MRU",
    "Benin": "XOF",
    "Togo": "XOF",
}

_COUNTRY_CURRENCIES_LOWER = {k.lower(): v for k, v in COUNTRY_CURRENCIES.items()}

CURRENCY_SYMBOLS = {
    "USD": "$",
    "INR": "₹",
    "GBP": "£",
    "EUR": "€",
    "CAD": "C$",
    "AUD": "A$",
    "JPY": "¥",
    "CNY": "¥",
    "BRL": "R$",
    "CHF": "CHF",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "PLN": "zł",
    "CZK": "Kč",
    "HUF": "Ft",
    "RUB": "₽",
    "KRW": "₩",
    "SGD": "S$",
    "HKD": "HK$",
    "NZD": "NZ$",
    "MXN": "$",
    "ZAR": "R",
    "TRY": "₺",
    "AED": "د.إ",
    "SAR": "﷼",
    "EGP": "£",
    "THB": "฿",
    "MYR": "RM",
    "IDR": "Rp",
    "PHP": "₱",
    "VND": "₫",
}


def currency_for_country(country: Optional[str]) -> str:
    if not country:
        return DEFAULT_CURRENCY
    return _COUNTRY_CURRENCIES_LOWER.get(country.strip().lower(), DEFAULT_CURRENCY)


def currency_symbol(code: str) -> str:
    return CURRENCY_SYMBOLS.get(code.upper(), code)


def format_currency(amount: Union[Decimal, float], code: str, decimals: int = 2) -> str:
    return f"{currency_symbol(code)}{amount:.{decimals}f}"


@dataclass(frozen=True)
class CountryInfo:
    name: str
    currency: str
    currency_symbol: str


FALLBACK_COUNTRIES = [
    CountryInfo("United States", "USD", "$"),
    CountryInfo("India", "INR", "₹"),
    CountryInfo("United Kingdom", "GBP", "£"),
    CountryInfo("Germany", "EUR", "€"),
    CountryInfo("France", "EUR", "€"),
    CountryInfo("Canada", "CAD", "C$"),
    CountryInfo("Australia", "AUD", "A$"),
    CountryInfo("Japan", "JPY", "¥"),
    CountryInfo("China", "CNY", "¥"),
    CountryInfo("Brazil", "BRL", "R$"),
]


def _fetch_countries_json() -> list:
    resp = requests.get(settings.countries_api_url, timeout=settings.http_timeout_seconds)
    resp.raise_for_status()
    return resp.json()


class CountryDirectory:
    def __init__(self, fetcher: Optional[Callable[[], list]] = None):
        self._fetcher = fetcher or _fetch_countries_json
        self._cache: Optional[List[CountryInfo]] = None

    def fetch_countries(self) -> List[CountryInfo]:
        if self._cache is not None:
            return self._cache
        try:
            countries = _parse_countries(self._fetcher())
        except (requests.RequestException, ValueError) as e:
            logger.warning("countries_fallback", error=str(e))
            return list(FALLBACK_COUNTRIES)

        self._cache = countries
        return countries


def _parse_countries(raw) -> List[CountryInfo]:
    """restcountries ``name,currencies`` payload to sorted ``CountryInfo``.

    Entries without a common name or a currency are skipped; a payload that
    is not a list, or yields nothing usable, raises ``ValueError``.
    """
    if not isinstance(raw, list):
        raise ValueError("Country list is not a JSON array")

    countries = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        name = name.get("common") if isinstance(name, dict) else None
        currencies = entry.get("currencies")
        if not isinstance(name, str) or not name or not isinstance(currencies, dict) or not currencies:
            continue
        code = next(iter(currencies))
        details = currencies[code] if isinstance(currencies[code], dict) else {}
        symbol = details.get("symbol") or code
        countries.append(CountryInfo(name=name, currency=code, currency_symbol=symbol))

    if not countries:
        raise ValueError("Country list has no usable entries")
    countries.sort(key=lambda c: c.name)
    return countries


def find_country(name: str, countries: List[CountryInfo]) -> Optional[CountryInfo]:
    wanted = name.strip().lower()
    for country in countries:
        if country.name.lower() == wanted:
            return country
    return None


def _disabled_fetcher() -> list:
    raise requests.RequestException("external lookups disabled")


_directory: Optional[CountryDirectory] = None


def get_country_directory() -> CountryDirectory:
    global _directory
    if _directory is None:
        _directory = CountryDirectory(
            fetcher=None if settings.external_lookups else _disabled_fetcher
        )
    return _directory
