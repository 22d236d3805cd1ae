from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Direction(str, Enum):
    BUY = "Купи"
    SELL = "Продай"


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    execution_time: dt.datetime
    instrument: str
    isin: Optional[str] = None
    order_currency: str
    direction: Direction
    quantity: float
    price: float
    transaction_value: float
    transaction_currency: str
    # Broker-applied rate; informational only, never used for conversion
    exchange_rate: Optional[float] = None
    profit_loss: float
    total: float


class CurrencyConversionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_currency: str
    original_value: float
    converted_bgn: float
    converted_eur: float
    exchange_rate_used: float
    date: dt.date
    total: float
    total_bgn: float
    total_eur: float


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: Optional[dt.datetime] = Field(default=None, alias="from")
    to: Optional[dt.datetime] = None


class StatementSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_sell_transactions: int = 0
    currencies_involved: FrozenSet[str] = Field(default_factory=frozenset)
    date_range: DateRange = Field(default_factory=DateRange)


class StatementResult(BaseModel):
    """Currency-normalized profit/loss report for one trading statement."""

    model_config = ConfigDict(frozen=True)

    transactions: Tuple[Transaction, ...] = ()
    sell_transactions: Tuple[Transaction, ...] = ()
    conversions: Tuple[CurrencyConversionResult, ...] = ()
    total_profit_bgn: float = 0.0
    total_profit_eur: float = 0.0
    total_loss_bgn: float = 0.0
    total_loss_eur: float = 0.0
    total_value_bgn: float = 0.0
    total_value_eur: float = 0.0
    # Sum of each sell's converted net cash total
    total_amount_bgn: float = 0.0
    total_amount_eur: float = 0.0
    summary: StatementSummary = Field(default_factory=StatementSummary)
