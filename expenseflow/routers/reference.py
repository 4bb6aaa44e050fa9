from decimal import Decimal
from typing import Dict, List

from fastapi import APIRouter, Depends, Query

from ..core.schema import ApiModel
from ..services.currency import ExchangeRateService, get_rate_service
from ..services.reference_data import (
    CountryDirectory,
    currency_for_country,
    currency_symbol,
    find_country,
    format_currency,
    get_country_directory,
)

router = APIRouter(
    prefix="/reference",
    tags=["reference"],
)


class CountryRead(ApiModel):
    name: str
    currency: str
    currency_symbol: str


class RatesRead(ApiModel):
    base: str
    rates: Dict[str, float]


class ConversionRead(ApiModel):
    amount: float
    from_currency: str
    to_currency: str
    converted: float
    formatted: str


@router.get(
    "/countries",
    response_model=List[CountryRead],
)
def list_countries(directory: CountryDirectory = Depends(get_country_directory)):
    return [
        CountryRead(name=c.name, currency=c.currency, currency_symbol=c.currency_symbol)
        for c in directory.fetch_countries()
    ]


@router.get(
    "/countries/{name}/currency",
    response_model=CountryRead,
)
def country_currency(name: str, directory: CountryDirectory = Depends(get_country_directory)):
    """Directory entry when the country is listed there, else the static table."""
    country = find_country(name, directory.fetch_countries())
    if country is not None:
        return CountryRead(name=country.name, currency=country.currency, currency_symbol=country.currency_symbol)
    code = currency_for_country(name)
    return CountryRead(name=name, currency=code, currency_symbol=currency_symbol(code))


@router.get(
    "/rates/{base}",
    response_model=RatesRead,
)
def exchange_rates(base: str, rates: ExchangeRateService = Depends(get_rate_service)):
    base = base.upper()
    return RatesRead(base=base, rates=rates.fetch_rates(base))


@router.get(
    "/convert",
    response_model=ConversionRead,
)
def convert_amount(
    amount: Decimal = Query(...),
    from_currency: str = Query(..., alias="from", min_length=3, max_length=3),
    to_currency: str = Query(..., alias="to", min_length=3, max_length=3),
    rates: ExchangeRateService = Depends(get_rate_service),
):
    """Convert for display. Fails with 502 so callers can show the original amount."""
    converted = rates.convert(amount, from_currency, to_currency)
    return ConversionRead(
        amount=float(amount),
        from_currency=from_currency.upper(),
        to_currency=to_currency.upper(),
        converted=float(converted),
        formatted=format_currency(Decimal(str(converted)), to_currency),
    )
