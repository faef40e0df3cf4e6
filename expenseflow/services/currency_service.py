"""Currency conversion and metadata helpers."""
from __future__ import annotations

import logging
import threading
import time
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Tuple

import requests

from expenseflow.services.errors import CurrencyConversionError

logger = logging.getLogger(__name__)

EXCHANGE_API_URL = "https://api.exchangerate-api.com/v4/latest/{base}"
REST_COUNTRIES_URL = "https://restcountries.com/v3.1/all?fields=name,currencies"


def get_default_currency_for_country(
    country_name: str,
    url: str = REST_COUNTRIES_URL,
    timeout: float = 10,
) -> Dict[str, Optional[str]]:
    """Return the default currency information for a given country."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        countries = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Failed to fetch country data: %s", exc)
        return {"currency_code": None, "currency_name": None}

    target = next(
        (
            entry
            for entry in countries
            if entry.get("name", {}).get("common", "").lower() == country_name.lower()
        ),
        None,
    )

    if not target:
        return {"currency_code": None, "currency_name": None}

    currencies = target.get("currencies") or {}
    if not currencies:
        return {"currency_code": None, "currency_name": None}

    code, details = next(iter(currencies.items()))
    return {"currency_code": code, "currency_name": details.get("name")}


def fetch_exchange_rates(base_currency: str, url: str = EXCHANGE_API_URL, timeout: float = 10) -> Dict[str, float]:
    """Fetch exchange rates for the given base currency."""
    try:
        response = requests.get(url.format(base=base_currency.upper()), timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise CurrencyConversionError(f"Exchange rates for {base_currency} unavailable: {exc}") from exc

    rates = payload.get("rates") if isinstance(payload, dict) else None
    if not rates or not isinstance(rates, dict):
        raise CurrencyConversionError(f"Exchange rate payload for {base_currency} has no rates")
    return rates


def apply_rate(amount: Decimal | float, rate: float | str) -> Decimal:
    quantized = Decimal(str(rate)) * Decimal(str(amount))
    return quantized.quantize(Decimal("0.01"))


class ExchangeRateConverter:
    """Converts amounts using the exchangerate-api service.

    Rates are cached per source currency for ``ttl_seconds``; a TTL of zero
    disables the cache. Any failure surfaces as ``CurrencyConversionError``.
    """

    def __init__(self, api_url: str = EXCHANGE_API_URL, timeout: float = 10, ttl_seconds: int = 3600) -> None:
        self.api_url = api_url
        self.timeout = timeout
        self.ttl_seconds = ttl_seconds
        self._cache: Dict[str, Tuple[float, Dict[str, float]]] = {}
        self._lock = threading.Lock()

    def rates_for(self, base_currency: str) -> Dict[str, float]:
        base = base_currency.upper()
        now = time.monotonic()
        with self._lock:
            cached = self._cache.get(base)
        if cached and self.ttl_seconds and now - cached[0] < self.ttl_seconds:
            return cached[1]

        rates = fetch_exchange_rates(base, url=self.api_url, timeout=self.timeout)
        with self._lock:
            self._cache[base] = (now, rates)
        return rates

    def __call__(self, amount: Decimal | float, source_currency: str, target_currency: str) -> Decimal:
        if source_currency.upper() == target_currency.upper():
            return Decimal(str(amount))

        rate = self.rates_for(source_currency).get(target_currency.upper())
        if not rate:
            raise CurrencyConversionError(f"No rate from {source_currency} to {target_currency}")
        try:
            return apply_rate(amount, rate)
        except InvalidOperation as exc:
            raise CurrencyConversionError(f"Invalid rate {rate!r} for {target_currency}") from exc

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
