"""Aggregation of sell transactions into the BGN/EUR profit and loss report."""
from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from schemas.trading_statement import (
    CurrencyConversionResult,
    DateRange,
    Direction,
    StatementResult,
    StatementSummary,
    Transaction,
)
from settings.config import settings

from .currency_converter import CurrencyConverter, ResolvedRates, rate_date

logger = logging.getLogger(__name__)

RateKey = Tuple[str, date]


class StatementAggregator:
    """Builds a :class:`StatementResult` from normalized transactions.

    Any conversion failure aborts the whole aggregation; a report with partial
    financial totals is never returned.
    """

    def __init__(self, converter: CurrencyConverter, *, max_concurrency: Optional[int] = None) -> None:
        self.converter = converter
        self.max_concurrency = max(1, max_concurrency or settings.RATE_LOOKUP_CONCURRENCY)

    async def aggregate(self, transactions: Iterable[Transaction]) -> StatementResult:
        transactions = tuple(transactions)
        sells = tuple(tx for tx in transactions if tx.direction is Direction.SELL)

        rates = await self._resolve_all(sells)

        conversions: List[CurrencyConversionResult] = []
        for tx in sells:
            resolved = rates[(tx.transaction_currency, rate_date(tx.execution_time))]
            converted = resolved.apply(tx.profit_loss)
            converted_total = resolved.apply(tx.total)
            conversions.append(
                CurrencyConversionResult(
                    original_currency=tx.transaction_currency,
                    original_value=tx.profit_loss,
                    converted_bgn=converted.bgn,
                    converted_eur=converted.eur,
                    exchange_rate_used=converted.rate_used,
                    date=resolved.on,
                    total=tx.total,
                    total_bgn=converted_total.bgn,
                    total_eur=converted_total.eur,
                )
            )

        totals = _accumulate(conversions)
        summary = StatementSummary(
            total_sell_transactions=len(sells),
            currencies_involved=frozenset(tx.transaction_currency for tx in transactions),
            date_range=_date_range(transactions),
        )
        logger.info(
            "Aggregated %d transactions (%d sells): profit %.2f BGN, loss %.2f BGN",
            len(transactions),
            len(sells),
            totals["total_profit_bgn"],
            totals["total_loss_bgn"],
        )
        return StatementResult(
            transactions=transactions,
            sell_transactions=sells,
            conversions=tuple(conversions),
            summary=summary,
            **totals,
        )

    async def _resolve_all(self, sells: Tuple[Transaction, ...]) -> Dict[RateKey, ResolvedRates]:
        keys: List[RateKey] = list(
            dict.fromkeys((tx.transaction_currency, rate_date(tx.execution_time)) for tx in sells)
        )
        if not keys:
            return {}

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def resolve(key: RateKey) -> ResolvedRates:
            async with semaphore:
                return await self.converter.resolve_rates(*key)

        tasks = [asyncio.ensure_future(resolve(key)) for key in keys]
        try:
            resolved = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            # No lookup outlives a failed run; exceptions are retrieved
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return dict(zip(keys, resolved))


def _accumulate(conversions: Iterable[CurrencyConversionResult]) -> Dict[str, float]:
    totals = {
        "total_profit_bgn": 0.0,
        "total_profit_eur": 0.0,
        "total_loss_bgn": 0.0,
        "total_loss_eur": 0.0,
        "total_amount_bgn": 0.0,
        "total_amount_eur": 0.0,
    }
    for conversion in conversions:
        # Zero counts as profit
        if conversion.converted_bgn >= 0:
            totals["total_profit_bgn"] += conversion.converted_bgn
        else:
            totals["total_loss_bgn"] += abs(conversion.converted_bgn)
        if conversion.converted_eur >= 0:
            totals["total_profit_eur"] += conversion.converted_eur
        else:
            totals["total_loss_eur"] += abs(conversion.converted_eur)
        totals["total_amount_bgn"] += conversion.total_bgn
        totals["total_amount_eur"] += conversion.total_eur
    totals["total_value_bgn"] = totals["total_profit_bgn"] + totals["total_loss_bgn"]
    totals["total_value_eur"] = totals["total_profit_eur"] + totals["total_loss_eur"]
    return totals


def _date_range(transactions: Tuple[Transaction, ...]) -> DateRange:
    if not transactions:
        return DateRange()
    times = [tx.execution_time for tx in transactions]
    return DateRange(from_=min(times), to=max(times))


__all__ = ["StatementAggregator"]
