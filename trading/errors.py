"""Failure taxonomy for trading statement processing.

Every error carries enough context (row index, currency, date) for the caller to
diagnose the offending input. Nothing in the pipeline swallows these or falls back
to a zero or identity rate.
"""
from __future__ import annotations

from datetime import date
from typing import Optional


class TradingStatementError(Exception):
    """Base class for all statement processing failures."""


class DocumentUnreadable(TradingStatementError):
    """Row extraction failed for the whole document."""

    def __init__(self, reason: str, *, filename: Optional[str] = None) -> None:
        self.reason = reason
        self.filename = filename
        where = f" ({filename})" if filename else ""
        super().__init__(f"Document unreadable{where}: {reason}")


class MalformedRow(TradingStatementError):
    """A single extracted row could not be normalized into a transaction."""

    def __init__(self, row_index: Optional[int], field: Optional[str], reason: str) -> None:
        self.row_index = row_index
        self.field = field
        self.reason = reason
        parts = []
        if row_index is not None:
            parts.append(f"row {row_index}")
        if field:
            parts.append(f"field '{field}'")
        location = ", ".join(parts) or "row"
        super().__init__(f"Malformed {location}: {reason}")


class RateUnavailable(TradingStatementError):
    """No historical rate could be obtained for a (currency, date) pair."""

    def __init__(
        self,
        currency: str,
        on: Optional[date] = None,
        quote: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.currency = currency
        self.on = on
        self.quote = quote
        self.reason = reason
        pair = f"{currency}/{quote}" if quote else currency
        when = f" on {on.isoformat()}" if on else ""
        detail = f": {reason}" if reason else ""
        super().__init__(f"No exchange rate for {pair}{when}{detail}")


class UnknownCurrency(RateUnavailable):
    """The currency has neither a fixed rate nor lookup support."""

    def __init__(self, currency: str, on: Optional[date] = None, quote: Optional[str] = None) -> None:
        super().__init__(currency, on, quote, reason="unsupported currency")


__all__ = [
    "DocumentUnreadable",
    "MalformedRow",
    "RateUnavailable",
    "TradingStatementError",
    "UnknownCurrency",
]
