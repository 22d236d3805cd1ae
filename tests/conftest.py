import os
import sys


def pytest_sessionstart(session):
    # Ensure project root is on sys.path so `trading` and `pdf` resolve
    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


# --- Test utilities: in-memory rate source ---
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

import pytest_asyncio

from schemas.trading_statement import Direction, Transaction
from trading.aggregator import StatementAggregator
from trading.currency_converter import CurrencyConverter
from trading.errors import RateUnavailable, UnknownCurrency


class FakeRateLookup:
    """Rates keyed by (currency, quote); per-date overrides win."""

    def __init__(
        self,
        rates: Optional[Dict[Tuple[str, str], float]] = None,
        dated: Optional[Dict[Tuple[str, date, str], float]] = None,
        unknown: Tuple[str, ...] = (),
    ) -> None:
        self.rates = dict(rates or {})
        self.dated = dict(dated or {})
        self.unknown = set(unknown)
        self.calls: List[Tuple[str, date, str]] = []

    async def lookup_rate(self, currency: str, on: date, quote: str) -> float:
        self.calls.append((currency, on, quote))
        if currency in self.unknown:
            raise UnknownCurrency(currency, on, quote)
        if (currency, on, quote) in self.dated:
            return self.dated[(currency, on, quote)]
        if (currency, quote) in self.rates:
            return self.rates[(currency, quote)]
        raise RateUnavailable(currency, on, quote, reason="no fake rate")


DEFAULT_RATES = {
    ("USD", "BGN"): 1.80,
    ("USD", "EUR"): 0.92,
    ("GBP", "BGN"): 2.28,
    ("GBP", "EUR"): 1.17,
}


def make_tx(
    *,
    direction: Direction = Direction.SELL,
    currency: str = "USD",
    profit_loss: float = 10.0,
    total: float = 110.0,
    when: datetime = datetime(2024, 3, 15, 14, 30),
    instrument: str = "AAPL",
) -> Transaction:
    return Transaction(
        execution_time=when,
        instrument=instrument,
        isin="US0378331005",
        order_currency=currency,
        direction=direction,
        quantity=1.0,
        price=total,
        transaction_value=total,
        transaction_currency=currency,
        exchange_rate=None,
        profit_loss=profit_loss,
        total=total,
    )


@pytest_asyncio.fixture
async def fake_rates():
    yield FakeRateLookup(DEFAULT_RATES)


@pytest_asyncio.fixture
async def converter(fake_rates):
    yield CurrencyConverter(fake_rates)


@pytest_asyncio.fixture
async def aggregator(converter):
    yield StatementAggregator(converter, max_concurrency=2)
