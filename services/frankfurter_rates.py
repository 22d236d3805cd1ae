"""Historical exchange rates from the Frankfurter API (ECB reference rates)."""
from __future__ import annotations

import time
from datetime import date, timedelta
from typing import Callable, Dict, Optional, Tuple

import httpx

from pdf.json_logger import get_json_logger
from settings.config import Settings, settings as default_settings
from trading.currencies import SUPPORTED_CURRENCIES
from trading.errors import RateUnavailable, UnknownCurrency

logger = get_json_logger("trading_statement.rates")

CacheKey = Tuple[str, str, date, date]


class FrankfurterRateProvider:
    """Looks up ``quote`` per one unit of ``currency`` on a calendar date.

    Rates are fetched as a short time series ending on the requested date so that
    weekends and bank holidays resolve to the closest previous fixing. Series are
    cached in-process; cached values are never mutated.
    """

    name = "frankfurter"

    def __init__(
        self,
        *,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        config: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or default_settings
        self._client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=self._config.RATES_TIMEOUT_SECONDS)
        )
        self._base_url = self._config.RATES_BASE_URL.rstrip("/")
        self._lookback = timedelta(days=max(self._config.RATE_LOOKBACK_DAYS, 0))
        self._ttl = max(self._config.RATE_CACHE_TTL_SECONDS, 0)
        self._clock = clock
        self._cache: Dict[CacheKey, Tuple[float, Dict[str, float]]] = {}

    async def lookup_rate(self, currency: str, on: date, quote: str) -> float:
        currency = currency.upper()
        quote = quote.upper()
        for code in (currency, quote):
            if code not in SUPPORTED_CURRENCIES:
                raise UnknownCurrency(code, on, quote)
        if currency == quote:
            return 1.0

        start = on - self._lookback
        series = await self._series(currency, quote, start, on)
        rate = closest_rate(series, on)
        if rate is None:
            raise RateUnavailable(currency, on, quote, reason=f"no fixing between {start} and {on}")
        return rate

    async def _series(self, currency: str, quote: str, start: date, end: date) -> Dict[str, float]:
        key = (currency, quote, start, end)
        cached = self._cache.get(key)
        if cached is not None:
            if self._clock() - cached[0] < self._ttl:
                return cached[1]
            del self._cache[key]

        url = f"{self._base_url}/{start.isoformat()}..{end.isoformat()}"
        params = {"base": currency, "symbols": quote}
        try:
            async with self._client_factory() as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "rate_fetch_failed",
                extra={"extra": {"currency": currency, "quote": quote, "start": start, "end": end, "error": str(exc)}},
            )
            raise RateUnavailable(currency, end, quote, reason=str(exc)) from exc

        series = parse_series(payload, quote)
        logger.info(
            "rate_series_fetched",
            extra={"extra": {"currency": currency, "quote": quote, "start": start, "end": end, "points": len(series)}},
        )
        if series:
            self._evict_expired()
            self._cache[key] = (self._clock(), series)
        return series

    def _evict_expired(self) -> None:
        now = self._clock()
        for key in [k for k, (stored, _) in self._cache.items() if now - stored >= self._ttl]:
            del self._cache[key]


def parse_series(payload: object, quote: str) -> Dict[str, float]:
    """Extract ``{"YYYY-MM-DD": rate}`` for ``quote`` from a time-series response."""
    rates = payload.get("rates") if isinstance(payload, dict) else None
    if not isinstance(rates, dict):
        return {}
    series: Dict[str, float] = {}
    for day, row in rates.items():
        if not isinstance(row, dict):
            continue
        value = row.get(quote)
        if isinstance(value, (int, float)) and value > 0:
            series[str(day)] = float(value)
    return series


def closest_rate(series: Dict[str, float], on: date) -> Optional[float]:
    """Rate on ``on`` or, failing that, on the closest earlier date."""
    target = on.isoformat()
    if target in series:
        return series[target]
    earlier = [day for day in series if day <= target]
    if not earlier:
        return None
    return series[max(earlier)]


__all__ = ["FrankfurterRateProvider", "closest_rate", "parse_series"]
