"""Conversion of transaction amounts into the BGN and EUR reporting currencies."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from settings.config import EUR_BGN_FIXED_RATE, REPORTING_CURRENCIES

from .currencies import MINOR_UNIT_CODES, SUPPORTED_CURRENCIES
from .errors import RateUnavailable, UnknownCurrency

logger = logging.getLogger(__name__)

BGN, EUR = REPORTING_CURRENCIES


class RateLookup(Protocol):
    """Historical rate source: units of ``quote`` per one unit of ``currency``."""

    async def lookup_rate(self, currency: str, on: date, quote: str) -> float:
        ...


@dataclass(frozen=True)
class ConvertedAmount:
    bgn: float
    eur: float
    rate_used: float


@dataclass(frozen=True)
class ResolvedRates:
    """Rates in effect for one currency on one calendar date."""

    currency: str
    on: date
    to_bgn: float
    to_eur: float
    rate_used: float
    fixed_rate: float = EUR_BGN_FIXED_RATE

    def apply(self, amount: float) -> ConvertedAmount:
        if self.currency == BGN:
            return ConvertedAmount(bgn=amount, eur=amount / self.fixed_rate, rate_used=self.rate_used)
        if self.currency == EUR:
            return ConvertedAmount(bgn=amount * self.fixed_rate, eur=amount, rate_used=self.rate_used)
        return ConvertedAmount(bgn=amount * self.to_bgn, eur=amount * self.to_eur, rate_used=self.rate_used)


def rate_date(moment: datetime | date) -> date:
    """Calendar date used for rate selection.

    Taken from the timestamp's own year/month/day; an aware timestamp is not
    shifted to UTC first.
    """
    if isinstance(moment, datetime):
        return moment.date()
    return moment


class CurrencyConverter:
    """Converts amounts to BGN/EUR using the peg or externally looked-up rates."""

    def __init__(
        self,
        rate_lookup: RateLookup,
        *,
        fixed_rate: float = EUR_BGN_FIXED_RATE,
        minor_unit_codes: frozenset[str] = MINOR_UNIT_CODES,
        supported_currencies: frozenset[str] = SUPPORTED_CURRENCIES,
    ) -> None:
        self.rate_lookup = rate_lookup
        self.fixed_rate = fixed_rate
        self.minor_unit_codes = minor_unit_codes
        self.supported_currencies = supported_currencies

    async def resolve_rates(self, currency: str, on: datetime | date) -> ResolvedRates:
        day = rate_date(on)
        if currency in self.minor_unit_codes or currency.upper() in self.minor_unit_codes:
            raise ValueError(f"Minor-unit currency {currency} must be normalized before conversion")
        currency = currency.upper()
        if currency not in self.supported_currencies:
            raise UnknownCurrency(currency, day)
        if currency == BGN:
            return ResolvedRates(BGN, day, 1.0, 1.0 / self.fixed_rate, self.fixed_rate, self.fixed_rate)
        if currency == EUR:
            return ResolvedRates(EUR, day, self.fixed_rate, 1.0, self.fixed_rate, self.fixed_rate)

        # Two independent lookups; the peg is never used to derive one from the other.
        to_bgn = self._checked(await self.rate_lookup.lookup_rate(currency, day, BGN), currency, day, BGN)
        to_eur = self._checked(await self.rate_lookup.lookup_rate(currency, day, EUR), currency, day, EUR)
        logger.debug("Resolved %s rates on %s: BGN=%s EUR=%s", currency, day, to_bgn, to_eur)
        return ResolvedRates(currency, day, to_bgn, to_eur, to_bgn, self.fixed_rate)

    async def convert(self, amount: float, currency: str, on: datetime | date) -> ConvertedAmount:
        rates = await self.resolve_rates(currency, on)
        return rates.apply(amount)

    @staticmethod
    def _checked(rate: float | None, currency: str, day: date, quote: str) -> float:
        if rate is None or not math.isfinite(rate) or rate <= 0:
            raise RateUnavailable(currency, day, quote, reason=f"lookup returned {rate!r}")
        return float(rate)


__all__ = [
    "BGN",
    "EUR",
    "ConvertedAmount",
    "CurrencyConverter",
    "RateLookup",
    "ResolvedRates",
    "rate_date",
]
